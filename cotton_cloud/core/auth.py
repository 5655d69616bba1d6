"""
Authentication Module (v1.1.0)
Bearer-token authentication with a demo-user fallback.

Token mechanics live in an external credential service; this module only
asks it to validate tokens. Requests without an Authorization header run as
a demo user so the mobile app works without an account.
"""
import logging
from typing import Any, Dict, Optional, Protocol
from fastapi import Header, HTTPException, Query, Request

logger = logging.getLogger(__name__)

# Configuration
DEMO_USER_ID = "demo-user"
DEMO_EMAIL = "demo@example.com"
BEARER_PREFIX = "Bearer "


class CredentialService(Protocol):
    """External collaborator that owns password hashing and tokens."""

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...

    def issue(self, subject: str) -> str: ...

    def validate(self, token: str) -> Dict[str, Any]:
        """Return token claims, or raise if the token is invalid or expired."""
        ...


class User:
    """Authenticated (or demo) user representation."""

    def __init__(self, user_id: str, email: str, is_demo: bool = False, claims: Optional[dict] = None):
        self.user_id = user_id
        self.email = email
        self.is_demo = is_demo
        self.claims = claims or {}

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "is_demo": self.is_demo,
        }


def demo_user(user_id: Optional[str] = None) -> User:
    return User(user_id=user_id or DEMO_USER_ID, email=DEMO_EMAIL, is_demo=True)


def user_from_claims(claims: Dict[str, Any]) -> User:
    """Map credential-service claims onto a User."""
    user_id = claims.get("userId") or claims.get("sub")
    if not user_id:
        raise ValueError("Token claims carry no subject")
    return User(user_id=str(user_id), email=str(claims.get("email", "")), claims=claims)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    user_id: Optional[str] = Query(None),
) -> User:
    """
    FastAPI dependency for authentication.

    Usage:
        @router.post("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If the header is malformed or the token is invalid
    """
    # No credentials - demo mode
    if not authorization:
        return demo_user(user_id)

    if not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization format",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token = authorization[len(BEARER_PREFIX):].strip()
    credential_service: Optional[CredentialService] = getattr(
        request.app.state, "credential_service", None
    )

    if credential_service is None:
        logger.warning("Bearer token received but no credential service is configured")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        user = user_from_claims(credential_service.validate(token))
    except Exception as e:
        logger.info(f"Token rejected: {e}")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    logger.debug(f"Authenticated user: {user.to_dict()}")
    return user
