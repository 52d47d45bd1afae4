from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from errors import MalformedRecordError
from models import Transaction, TransactionType

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

# Keeps every balance exact within models.LEDGER_CONTEXT.
MAX_AMOUNT = Decimal("1e18")
MAX_FRACTIONAL_DIGITS = 18


def parse_row(row: Mapping[Optional[str], Optional[str]]) -> Transaction:
    """
    Parse one CSV row into a Transaction.

    Header names and values are stripped, the type is matched
    case-insensitively. An empty amount column means "no amount", which
    is distinct from an amount of zero. Raises MalformedRecordError or
    UnsupportedKindError.
    """
    # DictReader keys surplus values under None and fills short rows with None.
    normalized = {
        k.strip().lower(): (v or "").strip()
        for k, v in row.items()
        if k is not None
    }

    try:
        transaction_type_str = normalized["type"]
        client_str = normalized["client"]
        transaction_str = normalized["tx"]
    except KeyError as e:
        raise MalformedRecordError(f"missing column {e}") from None

    transaction_type = TransactionType.from_string(transaction_type_str)
    client_id = _parse_id(client_str, "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(transaction_str, "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type.carries_amount:
        amount = _parse_amount(normalized.get("amount", ""))

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, name: str, upper: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise MalformedRecordError(f"invalid {name} id {value!r}") from None
    if not 0 <= parsed <= upper:
        raise MalformedRecordError(f"{name} id {parsed} out of range 0..{upper}")
    return parsed


def _parse_amount(value: str) -> Optional[Decimal]:
    if not value:
        return None
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise MalformedRecordError(f"invalid amount {value!r}") from None
    if not amount.is_finite():
        raise MalformedRecordError(f"amount {value!r} is not finite")
    if amount > MAX_AMOUNT:
        raise MalformedRecordError(f"amount {value!r} exceeds {MAX_AMOUNT:f}")
    if amount and _fractional_digits(amount) > MAX_FRACTIONAL_DIGITS:
        raise MalformedRecordError(f"amount {value!r} has more than {MAX_FRACTIONAL_DIGITS} fractional digits")
    return amount


def _fractional_digits(amount: Decimal) -> int:
    _, digits, exponent = amount.as_tuple()
    # Trailing zeros after the point do not count: "1.500" has one.
    trailing_zeros = len(digits) - len("".join(map(str, digits)).rstrip("0"))
    return max(0, -(exponent + trailing_zeros))
