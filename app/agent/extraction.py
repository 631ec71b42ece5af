import re
from dataclasses import dataclass
from typing import Optional

from app.core.enums import UNKNOWN_VENDOR
from app.utils.vendor import extract_rough_vendor

# "SGD 16.23", "SGD 1,234.56", "S$48.00", "S$ 89.99"
_AMOUNT = re.compile(r"(?:SGD|S\$)\s*([\d,]+\.\d{2})", re.IGNORECASE)
_DATE_SLASH = re.compile(r"\b(\d{2}/\d{2}/\d{2})\b")
_DATE_LONG = re.compile(r"\b(\d{1,2}\s+(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{4})\b", re.IGNORECASE)


@dataclass
class ExtractedExpense:
    amount: float
    vendor: str
    date_raw: Optional[str] = None

    @property
    def has_vendor(self) -> bool:
        return bool(self.vendor) and self.vendor != UNKNOWN_VENDOR


def extract_expense_from_text(text: str) -> Optional[ExtractedExpense]:
    """
    Regex fast path for Singapore bank alerts (UOB, DBS, OCBC).

    Returns None when no SGD amount is present, i.e. the email does not look
    like a transaction alert.
    """
    if not text:
        return None

    amount_match = _AMOUNT.search(text)
    if not amount_match:
        return None
    try:
        amount = float(amount_match.group(1).replace(",", ""))
    except ValueError:
        return None
    if amount <= 0:
        return None

    vendor = extract_rough_vendor(text) or UNKNOWN_VENDOR

    date_raw = None
    date_match = _DATE_SLASH.search(text) or _DATE_LONG.search(text)
    if date_match:
        date_raw = date_match.group(1)

    return ExtractedExpense(amount=amount, vendor=vendor, date_raw=date_raw)
