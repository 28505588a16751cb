"""
Domain errors raised by the trade services.

Routes translate these into HTTP responses; services never raise HTTPException.
"""
from enum import Enum


class TradeErrorCode(str, Enum):
    """Machine-readable codes carried by TradeTransitionError."""
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"


class TradeError(Exception):
    """Base class for every trade-domain failure."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TradeTransitionError(TradeError):
    """
    A participant or precondition check failed.

    UNAUTHORIZED maps to 403, INVALID_TRANSITION to 400.
    """

    def __init__(self, message: str, code: TradeErrorCode):
        super().__init__(message)
        self.code = code

    def __repr__(self) -> str:
        return f"<TradeTransitionError code={self.code.value} message={self.message!r}>"


class TradeValidationError(TradeError):
    """Malformed caller input, detected before any write."""


class TradeConflictError(TradeError):
    """The trade changed between read and write; the request lost the race."""


class TradeNotFoundError(TradeError):
    """The service was handed a trade that does not exist."""


class ReviewErrorCode(str, Enum):
    INVALID_RATING = "INVALID_RATING"
    NOT_PARTICIPANT = "NOT_PARTICIPANT"
    TRADE_NOT_COMPLETED = "TRADE_NOT_COMPLETED"
    ALREADY_REVIEWED = "ALREADY_REVIEWED"


class ReviewError(TradeError):
    """Review could not be recorded."""

    def __init__(self, message: str, code: ReviewErrorCode):
        super().__init__(message)
        self.code = code
