from datetime import timedelta

from catviewer.schemas.metadata import MetadataBatch, TrendPoint, TrendSeries

# Motion within this many seconds counts as the cat being present
CAT_PRESENT_SECONDS = 300
GAP_THRESHOLD = timedelta(hours=1)


def build_points(batch: MetadataBatch) -> list[TrendPoint]:
    """Turn metadata into oldest-first trend points, flagging reboots."""
    items = sorted(batch.items, key=lambda item: item.photo.timestamp)
    points: list[TrendPoint] = []
    previous_uptime: float | None = None

    for item in items:
        metadata = item.metadata
        points.append(
            TrendPoint(
                timestamp=item.photo.timestamp,
                temperature=metadata.temperature_celsius,
                humidity=metadata.humidity_percent,
                cat_present=metadata.seconds_since_last_motion < CAT_PRESENT_SECONDS,
                blanket_on=metadata.blanket_on,
                uptime=metadata.uptime_seconds,
                is_reboot=previous_uptime is not None and metadata.uptime_seconds < previous_uptime,
            )
        )
        previous_uptime = metadata.uptime_seconds

    return points


def fill_gaps(points: list[TrendPoint], threshold: timedelta = GAP_THRESHOLD) -> list[TrendPoint]:
    """Insert an empty point one second after any point followed by a gap over ``threshold``.

    Chart lines break at the empty point instead of interpolating across the gap.
    """
    if len(points) < 2:
        return list(points)

    filled: list[TrendPoint] = []
    for current, following in zip(points, points[1:], strict=False):
        filled.append(current)
        if following.timestamp - current.timestamp > threshold:
            filled.append(TrendPoint(timestamp=current.timestamp + timedelta(seconds=1), is_gap=True))
    filled.append(points[-1])
    return filled


def build_series(batch: MetadataBatch) -> TrendSeries:
    return TrendSeries(
        points=fill_gaps(build_points(batch)),
        failed=batch.failed,
        total=batch.total,
        warning=batch.warning,
        error=batch.error,
    )
