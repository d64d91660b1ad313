"""Domain errors raised while resolving and administering short links."""

from golinks.enums import RedirectError

__all__ = [
    "ShortLinkError",
    "LinkNotFoundError",
    "LinkInactiveError",
    "InvalidDestinationError",
    "ShortCodeTakenError",
]


class ShortLinkError(Exception):
    """Base class; ``error_code`` is the marker a fallback redirect carries."""

    error_code: RedirectError = RedirectError.REDIRECT_FAILED

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        super().__init__(message or f"{self.error_code.value}: {code}")


class LinkNotFoundError(ShortLinkError):
    error_code = RedirectError.LINK_NOT_FOUND


class LinkInactiveError(ShortLinkError):
    error_code = RedirectError.LINK_INACTIVE


class InvalidDestinationError(ShortLinkError):
    error_code = RedirectError.REDIRECT_FAILED


class ShortCodeTakenError(ValueError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Short code '{code}' is already taken")
