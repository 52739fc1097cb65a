"""Exception types raised across the zoning and assignment services."""

from __future__ import annotations


class FieldOpsError(Exception):
    """Base class for all errors raised by fieldops."""


class ParseError(FieldOpsError):
    """The boundary archive or the document inside it could not be read."""


class CollaboratorError(FieldOpsError):
    """A persistence collaborator failed while reading or writing."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class NotFoundError(FieldOpsError):
    """A referenced route, inspector or zone does not exist."""


class RouteStatusError(FieldOpsError):
    """A route status transition is not allowed from the current status."""

    def __init__(self, route_id: str, status: str, action: str) -> None:
        super().__init__(f"Cannot {action} route '{route_id}' while it is {status}.")
        self.route_id = route_id
        self.status = status
        self.action = action
