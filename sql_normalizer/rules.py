"""
Byte markers the scanner looks for, and the rule set that parameterizes it.

Only the pg_dump subset is recognized: line comments, single-quoted
literals, double-quoted identifiers, backslash meta-commands and the
search_path set_config call.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, FrozenSet

if TYPE_CHECKING:
    from .config import Settings


DEFAULT_SCHEMA = "public"

# pg_dump >= 17.6 wraps dumps in \restrict KEY ... \unrestrict KEY
DEFAULT_META_COMMANDS = frozenset({"restrict", "unrestrict"})

LINE_COMMENT = b"--"
META_COMMAND_MARKER = b"\\"
SINGLE_QUOTE = b"'"
DOUBLE_QUOTE = b'"'

SEARCH_PATH_CALL = b"pg_catalog.set_config('search_path', "
EMPTY_STRING = b"''"

UTF8_BOM = b"\xef\xbb\xbf"
WIDE_BOMS = (
    b"\x00\x00\xfe\xff",  # utf-32-be
    b"\xff\xfe\x00\x00",  # utf-32-le
    b"\xfe\xff",  # utf-16-be
    b"\xff\xfe",  # utf-16-le
)

IDENTIFIER_BYTES = frozenset(
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_$"
)

# unquoted ascii identifiers only; anything else cannot be matched byte-wise
SCHEMA_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")


@dataclass(frozen=True)
class NormalizerRules:
    """Immutable rule set consumed by the scanner."""

    default_schema: str = DEFAULT_SCHEMA
    meta_commands: FrozenSet[str] = DEFAULT_META_COMMANDS
    fix_search_path: bool = True
    strip_schema_prefix: bool = True

    def __post_init__(self) -> None:
        if not SCHEMA_NAME.fullmatch(self.default_schema):
            raise ValueError(
                f"default_schema must be a plain identifier, got {self.default_schema!r}"
            )

    @property
    def qualifier_prefix(self) -> bytes:
        return self.default_schema.encode("ascii") + b"."

    @property
    def search_path_match(self) -> bytes:
        return SEARCH_PATH_CALL + EMPTY_STRING

    @property
    def search_path_replacement(self) -> bytes:
        return SEARCH_PATH_CALL + SINGLE_QUOTE + self.default_schema.encode("ascii") + SINGLE_QUOTE

    def is_meta_command(self, keyword: bytes) -> bool:
        try:
            return keyword.decode("ascii") in self.meta_commands
        except UnicodeDecodeError:
            return False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "NormalizerRules":
        return cls(
            default_schema=settings.default_schema,
            meta_commands=frozenset(settings.meta_commands),
            fix_search_path=settings.fix_search_path,
            strip_schema_prefix=settings.strip_schema_prefix,
        )


DEFAULT_RULES = NormalizerRules()
