import re

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 8
MAX_USER_ID_LENGTH = 255


def clean_str(val, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty or not a string.
    """
    if not isinstance(val, str):
        return None
    s = re.sub(r"\s+", " ", val).strip()
    if not s:
        return None
    return s[:max_len]


def clean_text(val, max_len: int = 10000) -> str:
    """Trim free text but keep inner newlines. Returns '' for missing values."""
    if not isinstance(val, str):
        return ""
    return val.strip()[:max_len]


def is_valid_email(val: str | None) -> bool:
    if not val:
        return False
    return bool(_EMAIL_RE.match(val))


def clean_tags(val, max_tags: int = 10) -> list[str]:
    """Accept a list of tag names; drop blanks, keep order."""
    if not isinstance(val, list):
        return []
    tags = []
    for item in val:
        name = clean_str(item, max_len=50)
        if name:
            tags.append(name)
    return tags[:max_tags]


def opaque_id(val) -> str | None:
    """
    End-user ids belong to the embedding site: kept byte for byte, never
    trimmed or collapsed. Returns None if missing or not a string.
    """
    if not isinstance(val, str) or not val:
        return None
    return val
