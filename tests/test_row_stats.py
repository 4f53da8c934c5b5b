import pytest

from wrrecord.rows.row_stats import (
    FieldStats,
    InstantSample,
    WorkoutMeta,
    field_stats,
    summarise,
)

def test_zero_values_are_excluded_from_statistics():
    stats = field_stats([0, 140, 0, 150])
    assert stats.min == 140
    assert stats.avg == 145.0
    assert stats.max == 150

def test_field_without_positive_values_reports_zeros():
    assert field_stats([0, 0]) == FieldStats(0, 0.0, 0)
    assert field_stats([]) == FieldStats(0, 0.0, 0)

def test_summary_of_no_samples():
    summary = summarise([])
    assert summary.datapoints == 0
    assert summary.total_time_in_seconds == 0
    assert summary.heart_rate == FieldStats()

def test_summary_totals_come_from_latest_sample():
    samples = [
        InstantSample(time_in_seconds=2, distance_in_meters=5, stroke_count=1, heart_rate=0),
        InstantSample(time_in_seconds=4, distance_in_meters=12, stroke_count=2, heart_rate=140),
        InstantSample(time_in_seconds=6, distance_in_meters=20, stroke_count=4, heart_rate=150),
    ]
    meta = WorkoutMeta(date_time_start="2024-03-01 18:30:05", model="4", fw_version="12.13")
    summary = summarise(samples, meta)
    assert summary.datapoints == 3
    assert summary.total_time_in_seconds == 6
    assert summary.total_distance_in_meters == 20
    assert summary.total_stroke_count == 4
    assert summary.heart_rate == FieldStats(140, 145.0, 150)
    assert summary.meta is meta

def test_stroke_ratio_statistics_are_floats():
    samples = [InstantSample(stroke_ratio=0.8), InstantSample(stroke_ratio=0.0), InstantSample(stroke_ratio=1.2)]
    stats = summarise(samples).stroke_ratio
    assert stats.min == pytest.approx(0.8)
    assert stats.avg == pytest.approx(1.0)
    assert stats.max == pytest.approx(1.2)

def test_summary_is_a_pure_function_of_the_samples():
    samples = [InstantSample(time_in_seconds=t, seconds_per_500m=120 + t, strokes_per_minute=24) for t in (1, 2, 3)]
    assert summarise(samples) == summarise(samples)
    assert len(samples) == 3
