from aggregator.dedup import (
    is_same_event,
    merge_events,
    merge_pair,
    normalize_title,
    upcoming,
)
from aggregator.models import Coordinates, EventCategory, Occurrence
from conftest import TODAY


def test_normalize_title_strips_noise():
    assert normalize_title("The Jazz Night!") == "jazz night"
    assert normalize_title("  Café   Tacuba ") == "cafe tacuba"


def test_identical_records_from_two_sources_merge(create_event):
    a = create_event(id="tm_1", title="Jazz Night", location="Blue Note", primary_date="2025-06-01")
    b = create_event(id="sg_9", title="Jazz Night", location="Blue Note", primary_date="2025-06-01")
    merged = merge_events([a, b], TODAY)
    assert len(merged) == 1
    assert merged[0].occurrences == [Occurrence(date="2025-06-01")]
    assert merged[0].all_ids == {"tm_1", "sg_9"}


def test_merge_unions_occurrences_within_tolerance(create_event):
    a = create_event(id="tm_1", title="Jazz Night", location="Blue Note",
                     primary_date="2025-06-01", primary_time="19:30")
    b = create_event(id="sg_9", title="The Jazz Night", location="Blue Note NYC",
                     primary_date="2025-06-02", primary_time="20:00")
    (merged,) = merge_events([a, b], TODAY)
    assert [o.sort_key() for o in merged.occurrences] == [
        ("2025-06-01", "19:30"),
        ("2025-06-02", "20:00"),
    ]
    assert (merged.primary_date, merged.primary_time) == ("2025-06-01", "19:30")


def test_dates_too_far_apart_do_not_merge(create_event):
    a = create_event(id="tm_1", title="Jazz Night", primary_date="2025-06-01")
    b = create_event(id="sg_9", title="Jazz Night", primary_date="2025-06-05")
    assert len(merge_events([a, b], TODAY)) == 2


def test_different_titles_do_not_merge(create_event):
    a = create_event(id="tm_1", title="Jazz Night")
    b = create_event(id="sg_9", title="Trivia Tuesday")
    assert not is_same_event(a, b)


def test_venue_matched_by_position_when_names_differ(create_event):
    a = create_event(id="tm_1", title="Jazz Night", location="Blue Note",
                     coordinates=Coordinates(latitude=40.7308, longitude=-74.0007))
    b = create_event(id="sg_9", title="Jazz Night", location="The Blue Note Jazz Club NYC",
                     coordinates=Coordinates(latitude=40.7309, longitude=-74.0008))
    c = create_event(id="phq_3", title="Jazz Night", location="Birdland",
                     coordinates=Coordinates(latitude=40.7590, longitude=-73.9899))
    assert is_same_event(a, b)
    assert not is_same_event(a, c)


def test_same_source_series_collapses(create_event):
    shows = [
        create_event(id="tm_1", title="Hamilton", location="Forrest Theatre", primary_date="2025-06-03"),
        create_event(id="tm_2", title="Hamilton", location="Forrest Theatre", primary_date="2025-06-10"),
        create_event(id="tm_3", title="Hamilton", location="Forrest Theatre", primary_date="2025-06-24"),
    ]
    (series,) = merge_events(shows, TODAY)
    assert [o.date for o in series.occurrences] == ["2025-06-03", "2025-06-10", "2025-06-24"]
    assert len(merge_events(shows, TODAY, collapse_series=False)) == 3


def test_merge_prefers_ticketed_record_and_richer_fields(create_event):
    plain = create_event(id="phq_1", title="Jazz Night", description="A long and detailed write-up",
                         image="https://img/real.jpg", category=EventCategory.MUSIC, rank=40)
    ticketed = create_event(id="tm_1", title="Jazz Night", ticket_url="https://tm/1",
                            description="Short", rank=55)
    merged = merge_pair(plain, ticketed, TODAY)
    assert merged.id == "tm_1"
    assert merged.merged_ids == ["phq_1"]
    assert merged.ticket_url == "https://tm/1"
    assert merged.description == "A long and detailed write-up"
    assert merged.image == "https://img/real.jpg"
    assert merged.category is EventCategory.MUSIC
    assert merged.category_display == "Music"
    assert merged.rank == 55


def test_merge_is_independent_of_input_order(create_event):
    events = [
        create_event(id="tm_1", title="Jazz Night", location="Blue Note"),
        create_event(id="sg_9", title="Jazz Night", location="Blue Note", ticket_url="https://sg"),
        create_event(id="eb_4", title="Poetry Slam", location="Blue Note"),
    ]
    forward = merge_events(events, TODAY)
    backward = merge_events(list(reversed(events)), TODAY)
    assert [e.model_dump() for e in forward] == [e.model_dump() for e in backward]


def test_merged_occurrences_are_ordered(create_event):
    events = [
        create_event(id=f"tm_{i}", title="Open Studio", location="Crane Arts",
                     primary_date=day, primary_time=clock)
        for i, (day, clock) in enumerate(
            [("2025-06-09", "18:00"), ("2025-06-02", ""), ("2025-06-02", "11:00"), ("2025-06-05", "")]
        )
    ]
    for event in merge_events(events, TODAY):
        keys = [o.sort_key() for o in event.occurrences]
        assert keys and keys == sorted(keys)
        assert (event.primary_date, event.primary_time) == keys[0]


def test_upcoming_drops_past_and_redundant_date_only():
    occurrences = [
        Occurrence(date="2025-05-30", time="20:00"),
        Occurrence(date="2025-06-02"),
        Occurrence(date="2025-06-02", time="19:00"),
    ]
    assert upcoming(occurrences, TODAY) == [Occurrence(date="2025-06-02", time="19:00")]


def test_upcoming_keeps_everything_when_all_past():
    occurrences = [Occurrence(date="2025-05-01"), Occurrence(date="2025-04-01")]
    assert [o.date for o in upcoming(occurrences, TODAY)] == ["2025-04-01", "2025-05-01"]


def test_record_bridging_two_clusters_joins_them(create_event):
    """A middle date close to both neighbours pulls all three together."""
    events = [
        create_event(id="a_1", title="Jazz Night", location="Blue Note", primary_date="2025-06-01"),
        create_event(id="b_3", title="Jazz Night", location="Blue Note", primary_date="2025-06-03"),
        create_event(id="c_2", title="Jazz Night", location="Blue Note", primary_date="2025-06-02"),
    ]
    (merged,) = merge_events(events, TODAY)
    assert [o.date for o in merged.occurrences] == ["2025-06-01", "2025-06-02", "2025-06-03"]
    assert merged.all_ids == {"a_1", "b_3", "c_2"}
