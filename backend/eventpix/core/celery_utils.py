"""Helpers for queueing Celery tasks from request handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from kombu.exceptions import OperationalError

from eventpix.core.config import settings

logger = logging.getLogger(__name__)


def safe_celery_delay(task, *args, **kwargs) -> Optional[Any]:
    """
    Queue a Celery task without failing the request.

    Returns None when Celery is disabled or the broker cannot be reached; the
    caller decides whether to run the work inline.
    """
    if not settings.CELERY_ENABLED:
        return None
    try:
        result = task.delay(*args, **kwargs)
        logger.debug(f"Celery task {task.name} queued with ID: {result.id}")
        return result
    except (OperationalError, ConnectionError, OSError) as e:
        logger.warning(f"Failed to queue Celery task {task.name}: {e}")
        return None
