"""Timestamp helpers shared by the parser and analysis packages."""

import re
from datetime import datetime, timezone
from typing import Optional

# Seconds fraction of any length; fromisoformat before 3.11 takes only 3 or 6 digits
FRACTION_PATTERN = re.compile(r"(:\d{2})\.(\d+)")


def _normalize_fraction(match) -> str:
    digits = (match.group(2) + "000000")[:6]
    return f"{match.group(1)}.{digits}"


def parse_timestamp_ms(value: Optional[str]) -> Optional[float]:
    """
    Parse an ISO-8601 timestamp to epoch milliseconds.

    Naive timestamps are read as UTC. Fractions beyond microseconds are
    truncated. Empty or unparseable values yield None.
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = FRACTION_PATTERN.sub(_normalize_fraction, text, count=1)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000.0
