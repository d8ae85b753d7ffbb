from __future__ import annotations

import logging

from fastapi import HTTPException

from ..domain.models import DuplicateItemError
from ..logs import LogContext

logger = logging.getLogger(__name__)


def to_http_error(e: Exception, log: LogContext | None = None) -> HTTPException:
    """Map a store failure to 409 / 400 / 500. Call from inside the except block."""
    if isinstance(e, DuplicateItemError):
        status, detail = 409, str(e)
    elif isinstance(e, ValueError):
        status, detail = 400, str(e)
    else:
        logger.exception("unhandled error%s", f" in {log.action}" if log else "")
        status, detail = 500, "internal error"
    if log is not None:
        log.write("ERROR", str(e))
    return HTTPException(status_code=status, detail=detail)


def not_found(what: str, log: LogContext | None = None) -> HTTPException:
    if log is not None:
        log.write("NOT_FOUND")
    return HTTPException(status_code=404, detail=f"{what} not found")
