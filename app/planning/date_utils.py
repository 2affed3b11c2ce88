from __future__ import annotations

from datetime import datetime
from typing import Optional

# Portal dates look like "Mon 03 Jun 2024".
PORTAL_DATE_FORMAT = "%a %d %b %Y"


def parse_portal_date(value: Optional[str]) -> Optional[str]:
    """Return ``value`` as an ISO ``YYYY-MM-DD`` string, or ``None``.

    Empty and unparsable values yield ``None`` rather than raising. A weekday
    that does not match the calendar date also counts as unparsable.
    """

    candidate = " ".join((value or "").split())
    if not candidate:
        return None
    try:
        parsed = datetime.strptime(candidate, PORTAL_DATE_FORMAT)
    except ValueError:
        return None
    # strptime ignores %a when building the date.
    if parsed.strftime("%a").lower() != candidate.split(" ", 1)[0].lower():
        return None
    return parsed.strftime("%Y-%m-%d")


__all__ = ["parse_portal_date", "PORTAL_DATE_FORMAT"]
