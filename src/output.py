import csv
from decimal import Context, Decimal, ROUND_HALF_EVEN
from typing import Dict, TextIO

from models import ClientAccount

FIELDNAMES = ["client", "available", "held", "total", "locked"]


def format_amount(value: Decimal, precision: int = 4) -> str:
    """Format decimal with exactly `precision` fractional digits."""
    quantum = Decimal(1).scaleb(-precision)
    # Wide enough for every integer digit of value plus the fractional ones.
    context = Context(prec=max(value.adjusted() + precision + 2, 1))
    return f"{value.quantize(quantum, rounding=ROUND_HALF_EVEN, context=context):f}"


def write_accounts(accounts: Dict[int, ClientAccount], stream: TextIO, precision: int = 4) -> None:
    """Write one CSV row per client, ordered by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(FIELDNAMES)
    for client_id in sorted(accounts):
        account = accounts[client_id]
        writer.writerow([
            client_id,
            format_amount(account.available, precision),
            format_amount(account.held, precision),
            format_amount(account.total, precision),
            str(account.locked).lower(),
        ])
