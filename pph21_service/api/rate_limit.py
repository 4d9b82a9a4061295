import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from pph21_service import metrics
from pph21_service.core.config import settings

logger = logging.getLogger(__name__)

# memory:// in dev/test; point RATE_LIMIT_STORAGE_URI at redis:// to share limits across workers
limiter = Limiter(key_func=get_remote_address, storage_uri=settings.RATE_LIMIT_STORAGE_URI)
logger.info("Rate limiter storage: %s", settings.RATE_LIMIT_STORAGE_URI.split("://", 1)[0])

RATE_LIMITS = {
    "login": settings.RATE_LIMIT_LOGIN,
    "calculator": settings.RATE_LIMIT_CALCULATOR,
}


def increment_rate_limit_exceeded() -> None:
    metrics.rate_limit_exceeded()
