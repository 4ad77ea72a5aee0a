"""24-character hexadecimal identifiers shared by every table.

Layout matches the usual document-store object id: a 4-byte big-endian
creation timestamp followed by 8 random bytes, so ids sort roughly by
creation time.
"""
import os
import re
import time

from app.core.exceptions import ValidationError

OBJECT_ID_RE = re.compile(r"[0-9a-f]{24}")


def new_object_id() -> str:
    return int(time.time()).to_bytes(4, "big").hex() + os.urandom(8).hex()


def is_valid_object_id(value) -> bool:
    if not isinstance(value, str):
        return False
    return OBJECT_ID_RE.fullmatch(value.lower()) is not None


def parse_object_id(value, label: str = "ID") -> str:
    """Return the normalized id or raise ``ValidationError`` (400)."""
    if not is_valid_object_id(value):
        raise ValidationError(f"Invalid {label}")
    return value.lower()
