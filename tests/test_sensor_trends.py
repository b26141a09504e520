from datetime import timedelta

from catviewer.schemas.metadata import MetadataBatch, MetadataItem, PhotoMetadata
from catviewer.schemas.photo import Photo
from catviewer.sensor_trends import build_points, build_series, fill_gaps
from tests.helpers import sample_metadata, utc


def item(hour: int, minute: int = 0, **overrides) -> MetadataItem:
    ts = utc(2025, 10, 30, hour, minute)
    photo = Photo(key=f"photos/{hour}{minute}", file_name=f"{hour}{minute}", timestamp=ts, url="u")
    return MetadataItem(photo=photo, metadata=PhotoMetadata.model_validate(sample_metadata(**overrides)))


def test_points_are_oldest_first():
    batch = MetadataBatch(items=[item(5), item(3), item(4)], total=3)
    assert [p.timestamp.hour for p in build_points(batch)] == [3, 4, 5]


def test_cat_present_uses_motion_threshold():
    batch = MetadataBatch(items=[item(3, seconds_since_last_motion=299), item(4, seconds_since_last_motion=300)], total=2)
    assert [p.cat_present for p in build_points(batch)] == [True, False]


def test_reboot_detected_when_uptime_drops():
    batch = MetadataBatch(items=[item(3, uptime_seconds=100), item(4, uptime_seconds=3700), item(5, uptime_seconds=12)], total=3)
    assert [p.is_reboot for p in build_points(batch)] == [False, False, True]


def test_gap_marker_inserted_after_long_pause():
    points = build_points(MetadataBatch(items=[item(1), item(1, 30), item(4)], total=3))

    filled = fill_gaps(points)

    assert len(filled) == 4
    gap = filled[2]
    assert gap.is_gap
    assert gap.timestamp == utc(2025, 10, 30, 1, 30) + timedelta(seconds=1)
    assert gap.temperature is None


def test_exactly_one_hour_is_not_a_gap():
    points = build_points(MetadataBatch(items=[item(1), item(2)], total=2))
    assert not any(p.is_gap for p in fill_gaps(points))


def test_series_carries_batch_counts():
    batch = MetadataBatch(items=[item(1)], failed=1, total=2, warning="1 of 2 metadata files failed to load. Showing partial data.")

    series = build_series(batch)

    assert len(series.points) == 1
    assert series.failed == 1
    assert series.warning.startswith("1 of 2")
