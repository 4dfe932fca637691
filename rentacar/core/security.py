"""Access token inspection for the web app's own routes."""

from dataclasses import dataclass
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from rentacar.config import settings
from rentacar.schemas.token import TokenPayload
from rentacar.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of an access token verification."""

    valid: bool
    payload: Optional[TokenPayload] = None
    error: Optional[str] = None


def verify_token(token: str) -> VerifyResult:
    """Verify the signature and claims of a backend access token."""
    secret = settings.JWT_SECRET
    if not secret:
        logger.error("JWT_SECRET is not configured")
        return VerifyResult(
            valid=False, error="Configuration error: JWT_SECRET not set"
        )

    try:
        claims = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        return VerifyResult(valid=False, error="Token expired")
    except JWTError as e:
        message = str(e)
        if "ignature" in message:
            return VerifyResult(valid=False, error="Invalid signature")
        return VerifyResult(valid=False, error=message or "Malformed token")

    try:
        payload = TokenPayload.model_validate(claims)
    except ValidationError:
        return VerifyResult(valid=False, error="Invalid token payload structure")

    return VerifyResult(valid=True, payload=payload)


def read_token_claims(token: str) -> dict:
    """Decode the claims of a token without checking its signature.

    Raises:
        JWTError: The token is not a decodable JWT.
    """
    return jwt.get_unverified_claims(token)

