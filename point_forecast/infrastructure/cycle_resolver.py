from datetime import datetime, timedelta, timezone
from typing import Optional

from point_forecast.domain.dto import ModelCycle


# (earliest UTC hour the run is available, cycle hour), latest first
_AVAILABILITY = (
    (23, 18),
    (17, 12),
    (11, 6),
    (5, 0),
)


def resolve_cycle(now: Optional[datetime] = None) -> ModelCycle:
    """Pick the most recent cycle expected to be published at `now`.

    Runs become available roughly five hours after their start, so before
    05 UTC the previous day's 18z run is the latest one. Naive datetimes are
    taken as UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)

    for available_from, cycle_hour in _AVAILABILITY:
        if now.hour >= available_from:
            return ModelCycle(cycle_date=now.date(), hour=cycle_hour)

    yesterday = now - timedelta(days=1)
    return ModelCycle(cycle_date=yesterday.date(), hour=18)
