import pytest

from aggregator.dates import normalize_time, split_datetime


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("19:30:00", "19:30"),
        ("7:30 PM", "19:30"),
        ("7pm", "19:00"),
        ("12 am", "00:00"),
        ("12:15pm", "12:15"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_time(raw, expected):
    assert normalize_time(raw) == expected


@pytest.mark.parametrize("raw", ["25:00", "13pm", "noonish"])
def test_normalize_time_rejects_garbage(raw):
    with pytest.raises(ValueError):
        normalize_time(raw)


def test_split_date_only_has_no_time():
    assert split_datetime("2025-06-01") == ("2025-06-01", "")


def test_split_keeps_local_wall_clock():
    assert split_datetime("2025-06-01T19:05:00") == ("2025-06-01", "19:05")


def test_split_converts_utc_to_venue_zone():
    # 01:30 UTC is the previous evening in New York
    assert split_datetime("2025-06-02T01:30:00Z", "America/New_York") == ("2025-06-01", "21:30")
