"""Date input parsing shared by the form schemas and the submit flow."""
from datetime import date, datetime
from typing import Optional

DISPLAY_DATE_FORMAT = "%d/%m/%Y"
ISO_DATE_FORMAT = "%Y-%m-%d"


def _strict(value: str, fmt: str) -> Optional[date]:
    try:
        parsed = datetime.strptime(value, fmt).date()
    except ValueError:
        return None
    # strptime accepts "1/2/2024"; require the zero-padded form
    if parsed.strftime(fmt) != value:
        return None
    return parsed


def parse_date_input(value: str) -> Optional[str]:
    """Parse YYYY-MM-DD or DD/MM/YYYY input. Returns the ISO date string or None."""
    trimmed = (value or "").strip()
    if not trimmed:
        return None
    parsed = _strict(trimmed, ISO_DATE_FORMAT) or _strict(trimmed, DISPLAY_DATE_FORMAT)
    return parsed.strftime(ISO_DATE_FORMAT) if parsed else None


def format_display_date(value) -> str:
    """Format an ISO string, date or datetime as DD/MM/YYYY; '-' when unparseable."""
    if isinstance(value, (date, datetime)):
        return value.strftime(DISPLAY_DATE_FORMAT)
    iso = parse_date_input(value or "")
    if not iso:
        return "-"
    return datetime.strptime(iso, ISO_DATE_FORMAT).strftime(DISPLAY_DATE_FORMAT)


def today_display() -> str:
    return date.today().strftime(DISPLAY_DATE_FORMAT)
