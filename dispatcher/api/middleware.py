"""Per-client rate limiting shared by every router."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from dispatcher.config import settings

limiter = Limiter(key_func=get_remote_address)

# Limit string applied to each endpoint, e.g. "100/minute"
RATE_LIMIT = settings.rate_limit
