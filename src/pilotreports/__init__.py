"""pilotreports - reporting for pilot program observation data."""

from pilotreports.catalog.builtin import DEFAULT_CATALOG
from pilotreports.errors import (
    BackendError,
    BackendFunctionMissing,
    CatalogError,
    QueryBuildError,
    ReportingError,
)
from pilotreports.service import ReportingService

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CATALOG",
    "BackendError",
    "BackendFunctionMissing",
    "CatalogError",
    "QueryBuildError",
    "ReportingError",
    "ReportingService",
]
