"""
Tests for frame normalization and sample validation.
"""

import math

import pytest

from sdn_metrics.config.models import SeriesLabels
from sdn_metrics.domain.normalize import series_from_frame, series_from_frames
from sdn_metrics.domain.utils.validation import filter_valid_samples, is_valid_sample
from sdn_metrics.schemas.grafana import ResultFrame


def _frame(data):
    return ResultFrame.model_validate(data)


def test_frame_becomes_series(make_frame):
    """Labels of the value field map to group, bucket and host."""
    series = series_from_frame(_frame(make_frame("mzone1", "0.5", "host-a", [1, 2, 3])))
    assert series is not None
    assert series.group == "mzone1"
    assert series.bucket_boundary == "0.5"
    assert series.host == "host-a"
    assert series.samples == [1.0, 2.0, 3.0]


def test_null_samples_dropped(make_frame):
    """Grafana gaps (null) are removed, order is kept."""
    series = series_from_frame(_frame(make_frame("z", "1", "h", [None, 4, None, 9])))
    assert series.samples == [4.0, 9.0]


def test_all_null_frame_skipped(make_frame):
    """A frame with only gaps is an empty series."""
    assert series_from_frame(_frame(make_frame("z", "1", "h", [None, None]))) is None


def test_empty_value_column_skipped(make_frame):
    """A frame with no samples is skipped."""
    assert series_from_frame(_frame(make_frame("z", "1", "h", []))) is None


def test_frame_without_columns_skipped():
    """Grafana's no-data frame carries no columns at all."""
    frame = _frame({"schema": {"fields": []}, "data": {"values": []}})
    assert series_from_frame(frame) is None


def test_frame_without_value_column_rejected():
    """A time-only frame is a contract violation."""
    frame = _frame(
        {"schema": {"fields": [{"name": "Time"}]}, "data": {"values": [[1, 2]]}}
    )
    with pytest.raises(ValueError, match="value column"):
        series_from_frame(frame)


def test_frame_without_group_label_skipped(make_frame):
    """Series without a group are never accepted."""
    data = make_frame("", "1", "h", [1, 2])
    assert series_from_frame(_frame(data)) is None


def test_frame_without_bucket_label_skipped(make_frame, caplog):
    """A series without an ``le`` label cannot be placed in a bucket."""
    data = make_frame("z", "1", "h1", [1, 2])
    del data["schema"]["fields"][1]["labels"]["le"]
    with caplog.at_level("WARNING", logger="sdn_metrics.domain.normalize"):
        assert series_from_frame(_frame(data)) is None
    assert "without 'le' label" in caplog.text


def test_custom_label_keys(make_frame):
    """Label keys can be remapped."""
    data = make_frame("ignored", "1", "h", [1])
    data["schema"]["fields"][1]["labels"]["region"] = "eu"
    labels = SeriesLabels(group="region", host="agent_id")
    series = series_from_frame(_frame(data), labels)
    assert series.group == "eu"
    assert series.host == "1"


def test_series_from_frames_drops_skipped(make_frame):
    """Only usable frames become series."""
    frames = [
        _frame(make_frame("z", "1", "h1", [1, 2])),
        _frame(make_frame("z", "1", "h2", [])),
        _frame(make_frame("z", "+Inf", "h1", [3])),
    ]
    result = series_from_frames(frames)
    assert [(s.host, s.bucket_boundary) for s in result] == [("h1", "1"), ("h1", "+Inf")]


def test_is_valid_sample():
    """None, NaN and infinities are not valid samples."""
    assert is_valid_sample(0.0) is True
    assert is_valid_sample(12) is True
    assert is_valid_sample(None) is False
    assert is_valid_sample(math.nan) is False
    assert is_valid_sample(math.inf) is False
    assert is_valid_sample(True) is False


def test_filter_valid_samples_counts_dropped():
    """The number of removed samples is reported."""
    valid, dropped = filter_valid_samples([1, None, float("nan"), 2.5, -math.inf])
    assert valid == [1.0, 2.5]
    assert dropped == 3
