"""
Core SQL dump normalization.

Responsibilities:
- drop the dump preamble (blank lines, line comments, dump meta-commands)
- restore the empty search_path that pg_dump sets before the schema
- strip the redundant default-schema qualifier outside quoted text
- report what was changed
"""

from __future__ import annotations

import base64
import enum
import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from charset_normalizer import from_bytes

from .rules import (
    DEFAULT_RULES,
    DOUBLE_QUOTE,
    IDENTIFIER_BYTES,
    LINE_COMMENT,
    META_COMMAND_MARKER,
    SINGLE_QUOTE,
    UTF8_BOM,
    WIDE_BOMS,
    NormalizerRules,
)

_DOT = ord(".")


class NormalizationError(ValueError):
    """The input cannot be scanned as an ASCII-compatible byte stream."""


class Mode(enum.Enum):
    LINE_START = "line_start"
    LINE_COMMENT = "line_comment"
    STRING_LITERAL = "string_literal"
    QUOTED_IDENTIFIER = "quoted_identifier"
    PLAIN_TEXT = "plain_text"


@dataclass
class ScanStats:
    bom_removed: bool = False
    leading_lines_removed: int = 0
    meta_commands_removed: int = 0
    search_path_fixes: int = 0
    qualifiers_stripped: int = 0
    # (offset of the opening quote, mode) when the input ends inside quotes
    unterminated: Optional[Tuple[int, Mode]] = None
    unrecognized_meta_commands: List[Tuple[int, str]] = field(default_factory=list)


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _check_encoding(data: bytes) -> None:
    for bom in WIDE_BOMS:
        if data.startswith(bom):
            raise NormalizationError(
                "input starts with a UTF-16/UTF-32 byte-order mark; re-encode the dump as UTF-8"
            )
    nul = data.find(b"\x00")
    if nul != -1:
        raise NormalizationError(
            f"input contains a NUL byte at offset {nul}; wide encodings are not supported"
        )


def _end_of_line(data: bytes, pos: int) -> int:
    eol = data.find(b"\n", pos)
    return len(data) if eol == -1 else eol + 1


def _is_meta_command(words: List[bytes], rules: NormalizerRules) -> bool:
    # keyword plus at most one argument token
    return 1 <= len(words) <= 2 and rules.is_meta_command(words[0])


def _at_identifier_boundary(data: bytes, pos: int, stripped_until: int) -> bool:
    if pos == 0 or pos == stripped_until:
        return True
    prev = data[pos - 1]
    return prev not in IDENTIFIER_BYTES and prev != _DOT


def _prefixes_identifier(data: bytes, after: int) -> bool:
    # bytes >= 0x80 start non-ascii identifier characters
    if after >= len(data):
        return False
    nxt = data[after]
    return nxt in IDENTIFIER_BYTES or nxt == DOUBLE_QUOTE[0] or nxt >= 0x80


def scan_sql(raw: bytes, rules: NormalizerRules = DEFAULT_RULES) -> Tuple[bytes, ScanStats]:
    """
    Normalize a SQL dump in a single left-to-right pass.

    The scanner is a small state machine over ``Mode``. Lines are classified
    at LINE_START: while still in the preamble, blank lines and ``--``
    comments are dropped; recognized meta-commands are dropped wherever they
    start a line. Substitutions only happen in PLAIN_TEXT, so string
    literals, quoted identifiers and comments are copied through untouched.

    Returns the normalized bytes and the statistics collected on the way.
    """
    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected bytes, got {type(raw).__name__}")
    data = bytes(raw)
    _check_encoding(data)

    stats = ScanStats()
    out = bytearray()
    end = len(data)
    pos = 0
    if data.startswith(UTF8_BOM):
        stats.bom_removed = True
        pos = len(UTF8_BOM)

    prefix = rules.qualifier_prefix
    search_match = rules.search_path_match
    search_replacement = rules.search_path_replacement

    mode = Mode.LINE_START
    preamble = True
    quote_start = 0
    stripped_until = -1

    while pos < end:
        if mode is Mode.LINE_START:
            eol = _end_of_line(data, pos)
            line = data[pos:eol].strip()
            words = line[1:].split() if line.startswith(META_COMMAND_MARKER) else None

            if words is not None and _is_meta_command(words, rules):
                stats.meta_commands_removed += 1
                pos = eol
                continue
            if preamble and (not line or line.startswith(LINE_COMMENT)):
                stats.leading_lines_removed += 1
                pos = eol
                continue
            if preamble and words is not None:
                stats.unrecognized_meta_commands.append(
                    (data.count(b"\n", 0, pos) + 1, line.decode("ascii", errors="replace"))
                )

            preamble = False
            mode = Mode.PLAIN_TEXT
            continue

        if mode is Mode.LINE_COMMENT:
            eol = _end_of_line(data, pos)
            out += data[pos:eol]
            pos = eol
            mode = Mode.LINE_START
            continue

        if mode is Mode.STRING_LITERAL or mode is Mode.QUOTED_IDENTIFIER:
            quote = SINGLE_QUOTE if mode is Mode.STRING_LITERAL else DOUBLE_QUOTE
            close = data.find(quote, pos)
            if close == -1:
                out += data[pos:]
                stats.unterminated = (quote_start, mode)
                break
            if data.startswith(quote, close + 1):
                # doubled quote is an escaped quote
                out += data[pos:close + 2]
                pos = close + 2
                continue
            out += data[pos:close + 1]
            pos = close + 1
            mode = Mode.PLAIN_TEXT
            continue

        # PLAIN_TEXT
        byte = data[pos:pos + 1]
        if byte == b"\n":
            out += byte
            pos += 1
            mode = Mode.LINE_START
            continue
        if byte == SINGLE_QUOTE or byte == DOUBLE_QUOTE:
            mode = Mode.STRING_LITERAL if byte == SINGLE_QUOTE else Mode.QUOTED_IDENTIFIER
            quote_start = pos
            out += byte
            pos += 1
            continue
        if data.startswith(LINE_COMMENT, pos):
            mode = Mode.LINE_COMMENT
            continue
        if (
            rules.fix_search_path
            and data.startswith(search_match, pos)
            and _at_identifier_boundary(data, pos, -1)
        ):
            out += search_replacement
            pos += len(search_match)
            stats.search_path_fixes += 1
            continue
        if (
            rules.strip_schema_prefix
            and data.startswith(prefix, pos)
            and _at_identifier_boundary(data, pos, stripped_until)
            and _prefixes_identifier(data, pos + len(prefix))
        ):
            pos += len(prefix)
            stripped_until = pos
            stats.qualifiers_stripped += 1
            continue

        out += byte
        pos += 1

    return bytes(out), stats


def normalize_sql(raw: bytes, rules: NormalizerRules = DEFAULT_RULES) -> bytes:
    """Return ``raw`` with the dump preamble removed and known fixes applied."""
    normalized, _ = scan_sql(raw, rules)
    return normalized


def _count_lines(data: bytes) -> int:
    if not data:
        return 0
    return data.count(b"\n") + (0 if data.endswith(b"\n") else 1)


def build_report(
    raw: bytes, normalized: bytes, stats: ScanStats, rules: NormalizerRules
) -> tuple[Dict[str, Any], List[dict], List[dict]]:
    warnings: list[dict] = []
    errors: list[dict] = []

    # charset-normalizer's guess is informational only; bytes are never re-decoded
    match = from_bytes(raw).best()
    detected = match.encoding if match is not None else None

    for row, text in stats.unrecognized_meta_commands:
        warnings.append({
            "row": row,
            "column": None,
            "issue": "unrecognized_meta_command",
            "value": text,
            "action": "kept_verbatim",
        })

    # the output is produced, but quoting no longer lines up with the source
    if stats.unterminated is not None:
        offset, mode = stats.unterminated
        errors.append({
            "row": raw.count(b"\n", 0, offset) + 1,
            "column": None,
            "issue": f"unterminated_{mode.value}",
            "value": str(offset),
            "action": "extended_to_end_of_input",
        })

    report = {
        "encoding": {
            "detected": detected,
            "bom_removed": stats.bom_removed,
            "output": "unchanged",
            "notes": "Input is scanned byte-wise; only ASCII markers are interpreted.",
        },
        "preamble": {
            "lines_removed": stats.leading_lines_removed,
        },
        "meta_commands": {
            "recognized": sorted(rules.meta_commands),
            "removed": stats.meta_commands_removed,
        },
        "search_path": {
            "enabled": rules.fix_search_path,
            "value": rules.default_schema,
            "fixes": stats.search_path_fixes,
        },
        "schema_prefix": {
            "enabled": rules.strip_schema_prefix,
            "prefix": rules.qualifier_prefix.decode("ascii"),
            "stripped": stats.qualifiers_stripped,
        },
        "lines": {
            "before": _count_lines(raw),
            "after": _count_lines(normalized),
        },
    }

    return report, warnings, errors


def normalize_sql_bytes(raw: bytes, rules: NormalizerRules = DEFAULT_RULES) -> Dict[str, Any]:
    """
    Normalize a dump and wrap the result in the API's response envelope.

    Raises NormalizationError for input that cannot be scanned.
    """
    normalized, stats = scan_sql(raw, rules)
    report, warnings, errors = build_report(bytes(raw), normalized, stats, rules)

    return {
        "normalized_sql": {
            "sha256": _sha256_hex(normalized),
            "content_b64": base64.b64encode(normalized).decode("ascii"),
        },
        "report": {
            "summary": {
                "lines": _count_lines(normalized),
                "changed": normalized != bytes(raw),
                "warnings": len(warnings),
                "errors": len(errors),
                "deterministic": True,
            },
            "normalizations": report,
            "warnings": warnings,
            "errors": errors,
        },
    }
