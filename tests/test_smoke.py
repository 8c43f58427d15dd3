import base64

from fastapi.testclient import TestClient
from sql_normalizer.config import settings
from sql_normalizer.main import app

client = TestClient(app)

def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}

def test_normalize_pg_dump_preamble():
    raw = (
        "\\restrict abc123\n"
        "--\n"
        "-- PostgreSQL database dump\n"
        "--\n"
        "\n"
        "SELECT pg_catalog.set_config('search_path', '', false);\n"
        "CREATE TABLE public.users (\n"
        "    name text DEFAULT 'public.nobody' NOT NULL\n"
        ");\n"
        "\\unrestrict abc123\n"
    ).encode("utf-8")

    files = {"file": ("schema.sql", raw, "application/sql")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 200

    data = r.json()
    out_bytes = base64.b64decode(data["normalized_sql"]["content_b64"])
    assert out_bytes == (
        b"SELECT pg_catalog.set_config('search_path', 'public', false);\n"
        b"CREATE TABLE users (\n"
        b"    name text DEFAULT 'public.nobody' NOT NULL\n"
        b");\n"
    )

    normalizations = data["report"]["normalizations"]
    assert normalizations["preamble"]["lines_removed"] == 4
    assert normalizations["meta_commands"]["removed"] == 2
    assert normalizations["search_path"]["fixes"] == 1
    assert normalizations["schema_prefix"]["stripped"] == 1
    assert data["report"]["summary"]["changed"] is True
    assert data["report"]["summary"]["warnings"] == 0

def test_normalize_rejects_non_sql_upload():
    files = {"file": ("schema.csv", b"a,b\n", "text/csv")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 422

def test_normalize_rejects_wide_encoding():
    raw = "-- comment\nSELECT 1;\n".encode("utf-16")
    files = {"file": ("schema.sql", raw, "application/sql")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 422
    assert "UTF-16" in r.json()["detail"]

def test_normalize_reports_unterminated_literal():
    raw = b"SELECT 'never closed;\n"
    files = {"file": ("broken.sql", raw, "application/sql")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 200

    report = r.json()["report"]
    assert report["summary"]["errors"] == 1
    assert report["warnings"] == []

    errors = report["errors"]
    assert errors[0]["issue"] == "unterminated_string_literal"
    assert errors[0]["row"] == 1
    assert errors[0]["value"] == "7"
    assert errors[0]["action"] == "extended_to_end_of_input"

def test_normalize_rejects_oversized_upload(monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 16)

    files = {"file": ("big.sql", b"SELECT 1;\n" * 4, "application/sql")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 413

def test_normalize_accepts_upload_at_limit(monkeypatch):
    raw = b"SELECT public.f();\n"
    monkeypatch.setattr(settings, "max_upload_bytes", len(raw))

    files = {"file": ("small.sql", raw, "application/sql")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 200
    assert base64.b64decode(r.json()["normalized_sql"]["content_b64"]) == b"SELECT f();\n"
