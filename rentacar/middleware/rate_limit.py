"""Rate limiting for credential endpoints using SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from rentacar.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri="memory://",
)

CREDENTIALS_LIMIT = f"{max(settings.RATE_LIMIT_PER_MINUTE // 6, 1)}/minute"
