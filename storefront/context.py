"""
Per-request context passed explicitly through the consolidation core.
"""
import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from storefront.config import Config

logger = logging.getLogger("storefront.request")


def hash_identifier(identifier: str) -> str:
    """Hash identifier for logging (no PII)"""
    return hashlib.sha256(identifier.encode()).hexdigest()[:8]


class RequestLogger(logging.LoggerAdapter):
    """Adds request fields to every record, keeping per-call extra"""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


@dataclass
class RequestContext:
    """Client-held state and request-scoped logger for one inbound request"""
    session_id: str
    currency: str = Config.DEFAULT_CURRENCY
    auth_token: Optional[str] = None
    username: Optional[str] = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    # set once the auth token is found stale; the response must drop the auth cookies
    clear_auth_cookies: bool = field(default=False, init=False)
    log: RequestLogger = field(init=False, repr=False)

    def __post_init__(self):
        self.log = RequestLogger(
            logger,
            {
                "request_id": self.request_id,
                "hashed_session_id": hash_identifier(self.session_id) if self.session_id else None,
            },
        )

    @property
    def has_auth_token(self) -> bool:
        return bool(self.auth_token)

    @classmethod
    def from_cookies(cls, cookies: dict, session_id: Optional[str] = None, request_id: Optional[str] = None) -> "RequestContext":
        """Build a context from the request cookies (names from Config)"""
        kwargs = {
            "session_id": session_id or cookies.get(Config.COOKIE_SESSION_ID, ""),
            "currency": cookies.get(Config.COOKIE_CURRENCY) or Config.DEFAULT_CURRENCY,
            "auth_token": cookies.get(Config.COOKIE_TOKEN) or None,
            "username": cookies.get(Config.COOKIE_USERNAME) or None,
        }
        if request_id:
            kwargs["request_id"] = request_id
        return cls(**kwargs)
