"""k1s0 session auth library."""

from .adapter import Adapter, InMemoryAdapter
from .config import SessionAuthConfig, load
from .cookie import (
    Cookie,
    CookieAttributes,
    CookieController,
    SessionCookieAttributesOptions,
    SessionCookieOptions,
    parse_cookies,
    serialize_cookie,
)
from .exceptions import SessionAuthError, SessionAuthErrorCodes
from .ids import generate_id, generate_id_from_entropy_size
from .manager import SessionManager
from .models import DatabaseSession, DatabaseUser, Session, SessionValidationResult, User
from .request import verify_request_origin
from .timespan import TimeSpan, create_date, is_within_expiration_date
from .tokens import (
    CreatedToken,
    JWTOptions,
    SignOptions,
    TokenIssuer,
    VerifiedToken,
    VerifyOptions,
)

__all__ = [
    "Adapter",
    "InMemoryAdapter",
    "SessionManager",
    "Session",
    "User",
    "DatabaseSession",
    "DatabaseUser",
    "SessionValidationResult",
    "Cookie",
    "CookieAttributes",
    "CookieController",
    "SessionCookieOptions",
    "SessionCookieAttributesOptions",
    "parse_cookies",
    "serialize_cookie",
    "TokenIssuer",
    "JWTOptions",
    "SignOptions",
    "VerifyOptions",
    "CreatedToken",
    "VerifiedToken",
    "TimeSpan",
    "create_date",
    "is_within_expiration_date",
    "generate_id",
    "generate_id_from_entropy_size",
    "verify_request_origin",
    "SessionAuthConfig",
    "load",
    "SessionAuthError",
    "SessionAuthErrorCodes",
]
