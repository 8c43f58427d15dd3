import logging

from fastapi import FastAPI, UploadFile, File, HTTPException
from .config import settings
from .models import NormalizeResponse, HealthResponse
from .normalize import NormalizationError, normalize_sql_bytes
from .rules import NormalizerRules

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

rules = NormalizerRules.from_settings(settings)

app = FastAPI(
    title="sql-normalizer",
    description="Deterministic cleanup of SQL schema dumps for code generators",
    version="0.1.0",
)

@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}

@app.post("/normalize", response_model=NormalizeResponse)
async def normalize_sql(file: UploadFile = File(...)):
    if not (file.filename or "").lower().endswith(".sql"):
        raise HTTPException(status_code=422, detail="Only SQL files are supported")

    raw = await file.read(settings.max_upload_bytes + 1)
    if len(raw) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds {settings.max_upload_bytes} bytes",
        )

    try:
        result = normalize_sql_bytes(raw, rules)
    except NormalizationError as e:
        logger.warning("Rejected %s: %s", file.filename, e)
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(
        "Normalized %s: %d warning(s), %d error(s)",
        file.filename,
        result["report"]["summary"]["warnings"],
        result["report"]["summary"]["errors"],
    )
    return result
