import csv
import re
from io import StringIO
from typing import Sequence

from models import Transaction


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def export_transactions(transactions: Sequence[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["OccurredAt", "Type", "Amount", "Category", "Description"])
    for txn in transactions:
        writer.writerow(
            [
                txn.occurred_at.isoformat(timespec="seconds"),
                txn.type.value,
                f"{txn.amount_cents / 100:.2f}",
                sanitize_csv_value(txn.category),
                sanitize_csv_value(txn.description or ""),
            ]
        )
    return output.getvalue()
