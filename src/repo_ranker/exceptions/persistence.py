"""Storage exceptions.

Messages never carry storage internals; the underlying sqlite error is
chained via ``raise ... from`` and logged where it is caught.
"""

from .base import RepoRankerError

INTERNAL_ERROR_MSG = (
    "The server encountered an internal error and was unable to complete "
    "your request. Please try again later."
)


class PersistenceError(RepoRankerError):
    """Raised when the persistence gateway cannot read or write."""

    def __init__(self, message: str = INTERNAL_ERROR_MSG):
        super().__init__(message)


class RunNotFoundError(PersistenceError):
    """Raised when an analysis run id is unknown."""

    def __init__(self, run_id: int):
        super().__init__(f"No analysis run found with id {run_id}")
        self.run_id = run_id


class ReportNotFoundError(PersistenceError):
    """Raised when a repository report id is unknown."""

    def __init__(self, report_id: int):
        super().__init__(f"No analysis report found with id {report_id}")
        self.report_id = report_id
