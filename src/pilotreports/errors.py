"""Exceptions for pilotreports.

kept small on purpose. lookups still raise KeyError and bad configs still
raise ValueError so callers can catch the builtin types, the subclasses
just let the cli and service tell our errors apart from everything else.
"""


class ReportingError(Exception):
    """Base class for everything raised by pilotreports."""


class CatalogError(ReportingError, KeyError):
    """Unknown data source, dimension or measure."""

    def __str__(self) -> str:
        # KeyError wraps its message in quotes, which reads badly in the cli
        return str(self.args[0]) if self.args else ""


class QueryBuildError(ReportingError, ValueError):
    """A report config that can't be turned into a query."""


class BackendError(ReportingError):
    """A backend call failed.

    the hosted backend reports missing rpc functions as a 404 or a
    "... not found" message, so that's what is_missing_function sniffs for.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_missing_function(self) -> bool:
        if self.status_code == 404:
            return True
        text = self.message.lower()
        return "404" in text or "not found" in text


class BackendFunctionMissing(BackendError):
    """An rpc function the reporting code relies on isn't installed."""

    def __init__(self, function: str, migration: str | None = None) -> None:
        message = f"RPC function not found: {function}"
        if migration:
            message += f" (run migrations/{migration})"
        super().__init__(message, status_code=404)
        self.function = function
        self.migration = migration
