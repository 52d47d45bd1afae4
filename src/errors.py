from enum import Enum


class ProcessingResult(Enum):
    SUCCESS = "success"
    MALFORMED_RECORD = "malformed_record"
    UNSUPPORTED_KIND = "unsupported_kind"
    MISSING_AMOUNT = "missing_amount"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_HELD = "insufficient_held"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    NOT_DISPUTED = "not_disputed"
    ALREADY_DISPUTED = "already_disputed"
    ACCOUNT_LOCKED = "account_locked"

    @property
    def is_success(self) -> bool:
        return self is ProcessingResult.SUCCESS


class LedgerError(Exception):
    """Base class for every rejection the ledger can produce."""

    result: ProcessingResult


class MalformedRecordError(LedgerError):
    result = ProcessingResult.MALFORMED_RECORD


class UnsupportedKindError(LedgerError):
    result = ProcessingResult.UNSUPPORTED_KIND


class InsufficientFundsError(LedgerError):
    result = ProcessingResult.INSUFFICIENT_FUNDS


class InsufficientHeldError(LedgerError):
    result = ProcessingResult.INSUFFICIENT_HELD


class NotDisputedError(LedgerError):
    result = ProcessingResult.NOT_DISPUTED


class AlreadyDisputedError(LedgerError):
    result = ProcessingResult.ALREADY_DISPUTED


class InvariantViolationError(RuntimeError):
    """
    Raised when an account ends a mutation with total != available + held.
    Signals a bookkeeping bug, so the processor lets it propagate.
    """
