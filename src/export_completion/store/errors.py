"""Status store exceptions."""

from export_completion.engine.retry import MaxRetriesExceeded


class StatusStoreUnavailableError(MaxRetriesExceeded):
    """Raised when a status store operation exhausts its retry budget.

    Never mapped to "incomplete": only an absent count is. Callers let this
    propagate.
    """

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        Exception.__init__(self, f"Status store operation '{operation}' failed after {attempts} attempts: {last_error}")
