"""Task identifier generation."""

import re
import secrets
import string

ID_ALPHABET = string.digits + string.ascii_lowercase
ID_LENGTH = 8

_ID_PATTERN = re.compile(r"^[0-9a-z]+$")


def generate_task_id(existing: set[str] | None = None) -> str:
    """Generate a short random task id, avoiding ids already in use."""
    existing = existing or set()
    while True:
        candidate = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
        if candidate not in existing:
            return candidate


def is_valid_task_id(value: str) -> bool:
    """Check that an id is safe to use as a filename and in metadata comments."""
    return bool(_ID_PATTERN.match(value))
