"""Exceptions raised by the search pipeline."""


class SearchError(Exception):
    """Base exception for search operations."""
    pass


class QueryAnalysisError(SearchError):
    """The query analyzer failed or returned output that could not be parsed.

    Fatal for the request: no partial results are returned.
    """
    pass


class StrategyExecutionError(SearchError):
    """A strategy lookup against one record source failed.

    Recovered locally: the source (or the whole strategy) is skipped.
    """

    def __init__(self, strategy_type: str, source: str, cause: BaseException) -> None:
        super().__init__(f"{strategy_type} strategy failed on {source}: {cause}")
        self.strategy_type = strategy_type
        self.source = source
        self.cause = cause
