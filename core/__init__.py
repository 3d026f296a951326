"""Core application components."""

from core.logger import setup_logger, get_logger
from core.constants import (
    NumberingDefaults,
    PricingDefaults,
    DatabaseDefaults,
    ReportDefaults,
    AllotmentStatus,
    AuditEntity,
    AuditAction,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    DatabaseError,
    StoreUnavailableError,
    ValidationError,
    OutOfRangeError,
    InvalidFormatError,
    RangeMismatchError,
    InvalidAmountError,
    InvalidTransitionError,
    MissingFieldError,
    NotFoundError,
    UnknownDiaryError,
    ConflictError,
    DuplicateLotteryNumberError,
    ConflictActiveAllotmentError,
)

__all__ = [
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'NumberingDefaults',
    'PricingDefaults',
    'DatabaseDefaults',
    'ReportDefaults',
    'AllotmentStatus',
    'AuditEntity',
    'AuditAction',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'DatabaseError',
    'StoreUnavailableError',
    'ValidationError',
    'OutOfRangeError',
    'InvalidFormatError',
    'RangeMismatchError',
    'InvalidAmountError',
    'InvalidTransitionError',
    'MissingFieldError',
    'NotFoundError',
    'UnknownDiaryError',
    'ConflictError',
    'DuplicateLotteryNumberError',
    'ConflictActiveAllotmentError',
]
