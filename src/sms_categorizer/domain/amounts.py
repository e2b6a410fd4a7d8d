import re

from sms_categorizer.models import AmountFormat

_NUMBER_RUN_RE = re.compile(r"\d[\d.,]*")


def parse_amount(text: str, amount_format: AmountFormat) -> float | None:
    """
    Parse an extracted amount such as "$1.234.567,89" using the pattern's format.

    Returns None when the text holds no number.
    """
    cleaned = text
    if amount_format.currency_symbol:
        cleaned = cleaned.replace(amount_format.currency_symbol, "")
    cleaned = re.sub(r"\s+", "", cleaned)

    run = _NUMBER_RUN_RE.search(cleaned)
    if not run:
        return None

    number = run.group(0).rstrip(".,")
    number = number.replace(amount_format.thousands_separator, "")
    number = number.replace(amount_format.decimal_separator, ".")
    try:
        return float(number)
    except ValueError:
        return None
