"""Database package."""

from ghg_engine.db.models import (
    Activity,
    ActivityType,
    Base,
    CalculationResult,
    CalculationStatus,
    EmissionFactor,
    FactorCategory,
    PeriodSummary,
    ReportingStandard,
)
from ghg_engine.db.session import (
    close_db,
    get_background_session,
    init_db,
)

__all__ = [
    "get_background_session",
    "init_db",
    "close_db",
    "Base",
    "Activity",
    "ActivityType",
    "EmissionFactor",
    "FactorCategory",
    "CalculationResult",
    "ReportingStandard",
    "PeriodSummary",
    "CalculationStatus",
]
