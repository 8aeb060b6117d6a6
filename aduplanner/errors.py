"""
Error taxonomy for ADU Planner

Geometry-level errors are recovered locally (the offending ring is dropped);
request-level errors propagate to the caller with a human-readable message.
"""

from typing import Optional


class PlannerError(Exception):
    """Base class for all planner errors"""


class InvalidGeometry(PlannerError, ValueError):
    """A ring has fewer than 3 usable points"""


class MalformedResponse(PlannerError, ValueError):
    """Vision service output could not be parsed into the expected shape"""


class MissingViewport(PlannerError, RuntimeError):
    """The map surface has no reportable bounds/center for a capture"""


class ServiceError(PlannerError, RuntimeError):
    """
    The vision service reported a failure.

    The message is the service's `error` string, passed through unmodified.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidTransition(PlannerError, RuntimeError):
    """A boundary edit action is not allowed in the current state"""


class RequestInProgress(PlannerError, RuntimeError):
    """A vision request is already outstanding for this session"""
