import structlog
from fastapi import Depends

from app.core.config import AvailabilityConfig, settings
from app.core.database import AsyncSessionLocal
from app.core.retry import RetryPolicy
from app.services.availability import AvailabilityEngine
from app.services.store import AvailabilityStore, SQLAlchemyAvailabilityStore
from app.services.timezone import SystemClock

logger = structlog.get_logger(__name__)


def get_availability_config() -> AvailabilityConfig:
    """Engine configuration derived from the environment settings."""
    return settings.availability_config()


def get_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.SOURCE_RETRY_MAX_ATTEMPTS,
        base_delay=settings.SOURCE_RETRY_BASE_DELAY,
        backoff_multiplier=settings.SOURCE_RETRY_BACKOFF_MULTIPLIER,
    )


def get_availability_store(
    retry_policy: RetryPolicy = Depends(get_retry_policy),
) -> AvailabilityStore:
    return SQLAlchemyAvailabilityStore(AsyncSessionLocal, retry_policy=retry_policy)


def get_clock():
    return SystemClock()


def get_availability_engine(
    store: AvailabilityStore = Depends(get_availability_store),
    config: AvailabilityConfig = Depends(get_availability_config),
    clock=Depends(get_clock),
) -> AvailabilityEngine:
    """Build a fresh engine per request from explicit collaborators."""
    logger.debug("Creating availability engine", timezone=config.timezone)
    return AvailabilityEngine(store, config, clock=clock)
