# backend/fitbook/routes/v1/common.py
"""Helpers shared by the v1 routers."""

import logging
from typing import NoReturn

from ...core.exceptions import DomainException

logger = logging.getLogger(__name__)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """
    Re-raise a service failure as the HTTPException its class maps to.

    5xx outcomes are logged here; client errors are left to the problem
    handler, which already records them at info level.
    """
    http_exc = exc.to_http_exception()
    if http_exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} surfaced to route: {exc.message}")
    raise http_exc from exc
