import logging

from app.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "ingest":
        return settings.FLOW_LOGS_INGEST_ENABLED
    if category == "booking":
        return settings.FLOW_LOGS_BOOKING_ENABLED
    if category == "status":
        return settings.FLOW_LOGS_STATUS_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
