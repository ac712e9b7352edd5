"""Typed errors raised by the record store and the registries.

The HTTP layer turns every ``ServiceError`` into a JSON response carrying its
``status_code``; ``ConditionFailedError`` never leaves the service layer.
"""

from dataclasses import dataclass


class ServiceError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class LinkInconsistencyError(ConflictError):
    """The offer and location records disagree about whether they are linked."""


class InvalidCursorError(ServiceError):
    status_code = 400


class StoreUnavailableError(ServiceError):
    """Transient infrastructure failure: connection lost, timeout, contention."""

    status_code = 503


@dataclass(frozen=True, slots=True)
class FailedCondition:
    table: str
    key: str
    missing: bool = False


class ConditionFailedError(Exception):
    """A write-time condition rejected an atomic store update.

    ``failures`` holds one entry per rejected item; nothing was written.
    """

    def __init__(self, failures: list[FailedCondition]):
        self.failures = failures
        keys = ", ".join(f"{f.table}/{f.key}" for f in failures)
        super().__init__(f"Write-time condition failed for {keys}")

    def failed(self, table: str) -> FailedCondition | None:
        for failure in self.failures:
            if failure.table == table:
                return failure
        return None
