"""Health check API endpoints."""

from fastapi import APIRouter, Query

from app.core.health import check_database_connection, get_health_status
from app.core.logging import setup_logger

logger = setup_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    deep: bool = Query(
        default=False,
        description="Include conversation-store connectivity check",
    )
):
    """
    Health check endpoint with optional deep checking.

    Reports whether the upstream API credential is configured. Use
    ?deep=true to also check the conversation store database.
    """
    if not deep:
        return get_health_status(db_status=None)

    try:
        db_status = await check_database_connection()
    except Exception as e:
        logger.error(f"Deep health check failed: {e}")
        db_status = False

    return get_health_status(db_status)
