# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    blocked_time,
    service,
    staff,
    staff_schedule,
)

__all__ = [
    "appointment",
    "blocked_time",
    "service",
    "staff",
    "staff_schedule",
]
