"""
Statcrab error taxonomy.

Every failure surfaced by the engine is a FetchError subclass tagged with a
FetchErrorKind, so the presentation layer can render an error artifact from
the structured fields instead of parsing messages.
"""

from enum import Enum
from typing import Any, Dict, Optional


class FetchErrorKind(Enum):
    """Failure categories."""
    USER_NOT_FOUND = "user_not_found"
    INVALID_USERNAME = "invalid_username"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    MISSING_TOKEN = "missing_token"
    NETWORK_ERROR = "network_error"
    GRAPHQL_ERROR = "graphql_error"
    VALIDATION_ERROR = "validation_error"


class FetchError(Exception):
    """Base class for all statcrab failures."""

    kind: FetchErrorKind = FetchErrorKind.GRAPHQL_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value.replace("_", " "))
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for error rendering."""
        return {"kind": self.kind.value, "message": str(self)}


class UserNotFound(FetchError):
    kind = FetchErrorKind.USER_NOT_FOUND

    def __init__(self, username: str = "") -> None:
        super().__init__(f"User not found: {username}" if username else "User not found")
        self.username = username


class InvalidUsername(FetchError):
    kind = FetchErrorKind.INVALID_USERNAME


class RateLimitExceeded(FetchError):
    """Upstream quota exhausted; reset_at is the upstream-reported value, verbatim."""

    kind = FetchErrorKind.RATE_LIMIT_EXCEEDED

    def __init__(self, reset_at: Optional[str] = None) -> None:
        msg = f"Rate limit exceeded, resets at {reset_at}" if reset_at else "Rate limit exceeded"
        super().__init__(msg)
        self.reset_at = reset_at

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reset_at"] = self.reset_at
        return data


class MissingToken(FetchError):
    kind = FetchErrorKind.MISSING_TOKEN

    def __init__(self, message: str = "Missing GitHub token") -> None:
        super().__init__(message)


class NetworkError(FetchError):
    kind = FetchErrorKind.NETWORK_ERROR


class GraphQLError(FetchError):
    kind = FetchErrorKind.GRAPHQL_ERROR


class ValidationError(FetchError):
    """Invalid caller input, rejected before the cache or network is touched."""

    kind = FetchErrorKind.VALIDATION_ERROR

    def __init__(self, field: str, message: str = "") -> None:
        super().__init__(message or f"invalid value for {field}")
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data
