import pytest
from pydantic import ValidationError

from aggregator import config
from aggregator.models import (
    EventCategory,
    FilterCriteria,
    ModerationStatus,
    Occurrence,
    SELECTABLE_CATEGORIES,
    display_label,
    moderation_status_for,
)


def test_primary_fields_derive_occurrence(create_event):
    event = create_event(primary_date="2025-06-02", primary_time="20:00")
    assert event.occurrences == [Occurrence(date="2025-06-02", time="20:00")]


def test_occurrences_sorted_deduped_and_mirrored(create_event):
    """Primary date/time always reflect the earliest occurrence."""
    event = create_event(
        primary_date="",
        occurrences=[
            {"date": "2025-06-09", "time": "19:00"},
            {"date": "2025-06-02", "time": "21:00"},
            {"date": "2025-06-02", "time": "18:00"},
            {"date": "2025-06-09", "time": "19:00"},
        ],
    )
    keys = [o.sort_key() for o in event.occurrences]
    assert keys == [("2025-06-02", "18:00"), ("2025-06-02", "21:00"), ("2025-06-09", "19:00")]
    assert (event.primary_date, event.primary_time) == ("2025-06-02", "18:00")


def test_event_without_any_date_is_rejected(create_event):
    with pytest.raises(ValidationError):
        create_event(primary_date="")


@pytest.mark.parametrize(
    "bad",
    [
        {"date": "06/01/2025"},
        {"date": "2025-02-30"},
        {"date": "2025-13-01"},
        {"date": "2025-06-01", "time": "7pm"},
        {"date": "2025-06-01", "time": "99:99"},
        {"date": "2025-06-01", "time": "24:00"},
    ],
)
def test_occurrence_format_enforced(bad):
    with pytest.raises(ValidationError):
        Occurrence(**bad)


def test_blank_title_rejected(create_event):
    with pytest.raises(ValidationError):
        create_event(title="   ")


def test_defaults_fill_label_and_placeholder(create_event):
    event = create_event(id="sg_42", category=EventCategory.FOOD)
    assert event.category_display == "Food & Drink"
    assert event.image == config.placeholder_image("sg_42")
    assert config.is_placeholder_image(event.image)


def test_display_label_locales():
    assert display_label(EventCategory.MUSIC, "es") == "Música"
    assert display_label("outdoor", "fr-CA") == "Plein air"
    assert display_label(EventCategory.FAMILY, "xx") == "Family"


def test_moderation_thresholds():
    assert moderation_status_for(0) is ModerationStatus.ACTIVE
    assert moderation_status_for(2) is ModerationStatus.ACTIVE
    assert moderation_status_for(3) is ModerationStatus.HIDDEN_REVIEW
    assert moderation_status_for(5) is ModerationStatus.REMOVED


def test_all_ids_and_activity(create_event):
    event = create_event(id="tm_1", merged_ids=["sg_2"], status=ModerationStatus.HIDDEN_REVIEW)
    assert event.all_ids == {"tm_1", "sg_2"}
    assert not event.is_active
    assert create_event().is_active


def test_filter_criteria_defaults():
    criteria = FilterCriteria()
    assert criteria.distance_miles == config.DEFAULT_DISTANCE_MILES
    assert criteria.time_range.value == "month"
    assert criteria.categories == SELECTABLE_CATEGORIES
    assert not criteria.filters_categories


def test_filter_criteria_rejects_bad_values():
    with pytest.raises(ValidationError):
        FilterCriteria(distance_miles=0)
    with pytest.raises(ValidationError):
        FilterCriteria(time_range="fortnight")
    with pytest.raises(ValidationError):
        FilterCriteria(categories=["polka"])


def test_filters_categories_only_for_proper_subset():
    assert FilterCriteria(categories=["music"]).filters_categories
    assert not FilterCriteria(categories=[]).filters_categories
