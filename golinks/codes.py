"""Short code normalisation and validation rules."""

import re

__all__ = ["MIN_CODE_LENGTH", "MAX_CODE_LENGTH", "RESERVED_CODES", "normalize_code", "validate_short_code"]

MIN_CODE_LENGTH = 3
MAX_CODE_LENGTH = 30

# Top-level site paths a short code must not shadow.
RESERVED_CODES = frozenset(
    {
        "about",
        "account",
        "admin",
        "api",
        "app",
        "auth",
        "blog",
        "contact",
        "dashboard",
        "go",
        "help",
        "login",
        "privacy",
        "services",
        "settings",
        "signup",
        "start-filing",
        "store",
        "support",
        "terms",
    }
)

_CODE_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")


def normalize_code(raw: str) -> str:
    return raw.strip().lower()


def validate_short_code(code: str) -> str:
    """Return the normalised code, or raise ``ValueError`` describing the first broken rule."""
    code = normalize_code(code)
    if len(code) < MIN_CODE_LENGTH:
        raise ValueError(f"Short code must be at least {MIN_CODE_LENGTH} characters")
    if len(code) > MAX_CODE_LENGTH:
        raise ValueError(f"Short code must be {MAX_CODE_LENGTH} characters or less")
    if not code[0].isascii() or not code[0].isalpha():
        raise ValueError("Short code must start with a letter")
    if not _CODE_PATTERN.match(code):
        raise ValueError("Short code can only contain letters, numbers, and hyphens")
    if code.endswith("-"):
        raise ValueError("Short code cannot end with a hyphen")
    if code in RESERVED_CODES:
        raise ValueError("This short code is reserved")
    return code
