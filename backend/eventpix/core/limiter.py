"""Rate limiting configuration."""

from __future__ import annotations

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from eventpix.core.config import settings

logger = logging.getLogger(__name__)

# Redis-backed limits are shared between workers; memory:// is per process
storage_uri = settings.RATE_LIMIT_STORAGE_URL or "memory://"

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=storage_uri,
    in_memory_fallback_enabled=True,
    swallow_errors=True,
)
logger.info(f"Rate limiter configured with storage: {storage_uri}")
