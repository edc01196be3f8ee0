"""Exception hierarchy shared by the faceted search package."""


class FacetedSearchError(RuntimeError):
    """Base class for all errors raised by faceted_search."""


class ConfigurationError(FacetedSearchError):
    """Raised when a field configuration file cannot be loaded or validated."""


class QueryExecutionError(FacetedSearchError):
    """Raised by query executors when the engine is unreachable or rejects a request."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class IndexAdministrationError(FacetedSearchError):
    """Raised by index administrators when a mapping or bulk request fails."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
