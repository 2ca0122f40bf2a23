# offer_analytics/target_achievement/exceptions.py
"""
Errors raised to callers of the target report engine.

Callers catch TargetReportError and branch on `kind`; bad input and
an empty-but-valid result are never reported the same way.
"""

from enum import Enum


class ErrorKind(str, Enum):
    BAD_INPUT = 'BAD_INPUT'
    NO_DATA = 'NO_DATA'


# ==================== CUSTOM EXCEPTIONS ====================

class TargetReportError(Exception):
    """Base exception for target report errors"""
    kind = ErrorKind.BAD_INPUT

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'field': self.field,
            'message': str(self),
        }


class InvalidReportInput(TargetReportError):
    """Raised for malformed periods, unknown scopes or product types"""
    kind = ErrorKind.BAD_INPUT


class InvalidPeriodError(InvalidReportInput):
    """Raised when a period key fails the YYYY / YYYY-MM pattern"""
    def __init__(self, period: str, period_type: str, reason: str = None):
        self.period = period
        self.period_type = period_type
        expected = 'YYYY-MM' if period_type == 'MONTHLY' else 'YYYY'
        message = f"Invalid {period_type} period '{period}'. Expected {expected}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, field='period')


class NoReportData(TargetReportError):
    """Raised when a valid request has neither targets nor offers"""
    kind = ErrorKind.NO_DATA
