"""
Error codes and exceptions for the scheduling engine.

Every failure the engine can report is synchronous and raised to the
immediate caller. The API layer turns these into structured responses
using the error code attached to each exception.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Professional error codes for API responses."""
    SUCCESS = "SUCCESS"
    ERR_MISSING_FIELD = "ERR_MISSING_FIELD"
    ERR_INVALID_ALGORITHM = "ERR_INVALID_ALGORITHM"
    ERR_INVALID_PARAMETER = "ERR_INVALID_PARAMETER"
    ERR_INVALID_WORKING_HOURS = "ERR_INVALID_WORKING_HOURS"
    ERR_DUPLICATE_TASK_ID = "ERR_DUPLICATE_TASK_ID"
    ERR_ALGORITHM_FAILED = "ERR_ALGORITHM_FAILED"


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine."""

    code = ErrorCode.ERR_INVALID_PARAMETER

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict:
        result = {
            'error_code': self.code.value,
            'message': self.message
        }
        if self.field:
            result['field'] = self.field
        return result


class InvalidAlgorithmError(SchedulingError):
    """Requested algorithm tag is not one of the known algorithms."""
    code = ErrorCode.ERR_INVALID_ALGORITHM


class InvalidParameterError(SchedulingError):
    """A numeric parameter is outside its allowed range."""
    code = ErrorCode.ERR_INVALID_PARAMETER


class InvalidWorkingHoursError(SchedulingError, ValueError):
    """Working hours are malformed or describe an empty window."""
    code = ErrorCode.ERR_INVALID_WORKING_HOURS
