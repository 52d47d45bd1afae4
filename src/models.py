import functools
import threading
from collections import Counter
from dataclasses import dataclass, field
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow, ROUND_HALF_EVEN, localcontext
from enum import Enum
from typing import Dict, Optional, Tuple

from errors import (
    AlreadyDisputedError,
    InsufficientFundsError,
    InsufficientHeldError,
    InvariantViolationError,
    NotDisputedError,
    ProcessingResult,
    UnsupportedKindError,
)

__all__ = [
    "LEDGER_CONTEXT",
    "TransactionType",
    "ProcessingResult",
    "Transaction",
    "ClientAccount",
    "ProcessingStats",
]


# Balance arithmetic never rounds: 50 digits cover MAX_AMOUNT (record_parser)
# summed over every u32 transaction id at 18 fractional digits.
LEDGER_CONTEXT = Context(prec=50, rounding=ROUND_HALF_EVEN, traps=[InvalidOperation, Inexact, Overflow])


def exact(method):
    """Run a balance mutation under LEDGER_CONTEXT."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        with localcontext(LEDGER_CONTEXT):
            return method(*args, **kwargs)

    return wrapper


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @classmethod
    def from_string(cls, raw: str) -> "TransactionType":
        """Case-insensitive lookup of an input kind string."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise UnsupportedKindError(f"unsupported transaction type {raw!r}") from None

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    """
    Balances of a single client.

    Every primitive either applies completely or raises a LedgerError
    before touching any field. total is stored rather than derived and
    is checked against available + held after each mutation.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    locked: bool = False
    disputed: Dict[int, Decimal] = field(default_factory=dict)

    @exact
    def credit(self, amount: Decimal) -> None:
        self.available += amount
        self.total += amount
        self._check_invariant()

    @exact
    def debit(self, amount: Decimal) -> None:
        if self.available < amount:
            raise InsufficientFundsError(
                f"client {self.client_id}: available {self.available} < {amount}"
            )
        self.available -= amount
        self.total -= amount
        self._check_invariant()

    @exact
    def hold(self, amount: Decimal, transaction_id: int) -> None:
        """Move amount from available to held under a dispute on transaction_id."""
        if transaction_id in self.disputed:
            raise AlreadyDisputedError(
                f"client {self.client_id}: tx {transaction_id} is already disputed"
            )
        if self.available < amount:
            raise InsufficientFundsError(
                f"client {self.client_id}: available {self.available} < {amount}"
            )
        self.available -= amount
        self.held += amount
        self.disputed[transaction_id] = amount
        self._check_invariant()

    @exact
    def release(self, transaction_id: int) -> Decimal:
        """Return the held amount of a resolved dispute to available."""
        amount = self._disputed_amount(transaction_id)
        self.held -= amount
        self.available += amount
        del self.disputed[transaction_id]
        self._check_invariant()
        return amount

    @exact
    def forfeit(self, transaction_id: int) -> Decimal:
        """Remove the held amount of a charged back dispute and lock the account."""
        amount = self._disputed_amount(transaction_id)
        self.held -= amount
        self.total -= amount
        del self.disputed[transaction_id]
        self.locked = True
        self._check_invariant()
        return amount

    def is_disputed(self, transaction_id: int) -> bool:
        return transaction_id in self.disputed

    def snapshot(self) -> Tuple[Decimal, Decimal, Decimal, bool]:
        return self.available, self.held, self.total, self.locked

    def _disputed_amount(self, transaction_id: int) -> Decimal:
        amount = self.disputed.get(transaction_id)
        if amount is None:
            raise NotDisputedError(
                f"client {self.client_id}: tx {transaction_id} is not under dispute"
            )
        # Unreachable unless held was modified outside hold/release/forfeit.
        if self.held < amount:
            raise InsufficientHeldError(
                f"client {self.client_id}: held {self.held} < disputed {amount}"
            )
        return amount

    def _check_invariant(self) -> None:
        if self.total != self.available + self.held:
            raise InvariantViolationError(
                f"client {self.client_id}: total {self.total} != "
                f"available {self.available} + held {self.held}"
            )


class ProcessingStats:
    """Thread-safe counters of processing outcomes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Counter = Counter()

    def record(self, result: ProcessingResult) -> None:
        with self._lock:
            self._counts[result] += 1

    def count(self, result: ProcessingResult) -> int:
        with self._lock:
            return self._counts[result]

    @property
    def processed(self) -> int:
        return self.count(ProcessingResult.SUCCESS)

    @property
    def failed(self) -> int:
        with self._lock:
            return sum(n for result, n in self._counts.items() if not result.is_success)

    def summary(self) -> str:
        with self._lock:
            failures = ", ".join(
                f"{result.value}={n}"
                for result, n in sorted(self._counts.items(), key=lambda item: item[0].value)
                if not result.is_success
            )
            processed = self._counts[ProcessingResult.SUCCESS]
        return f"Processed: {processed}, Failed: {self.failed}" + (f" ({failures})" if failures else "")
