"""Tests for the slot grid."""

from datetime import time, timedelta

import pytest

from app.services.slot_calendar import OfficeHours, SlotCalendar, generate_slots

HALF_HOUR = timedelta(minutes=30)


@pytest.fixture
def calendar() -> SlotCalendar:
    return SlotCalendar(OfficeHours(start=time(9, 0), end=time(17, 0), slot_duration=HALF_HOUR))


def test_full_day_has_sixteen_half_hour_slots(calendar):
    """Test the default window yields 09:00 through 16:30."""
    slots = calendar.slots()

    assert len(slots) == 16
    assert slots[0] == time(9, 0)
    assert slots[-1] == time(16, 30)
    assert time(17, 0) not in slots


def test_slots_are_ascending_and_evenly_spaced(calendar):
    slots = calendar.slots()
    assert slots == sorted(slots)
    assert {
        (slots[i + 1].hour * 60 + slots[i + 1].minute) - (slots[i].hour * 60 + slots[i].minute)
        for i in range(len(slots) - 1)
    } == {30}


def test_generate_slots_is_restartable():
    first = list(generate_slots(time(9, 0), time(10, 0), timedelta(minutes=20)))
    second = list(generate_slots(time(9, 0), time(10, 0), timedelta(minutes=20)))
    assert first == second == [time(9, 0), time(9, 20), time(9, 40)]


def test_generate_slots_with_duration_not_dividing_window():
    """Test the last slot starts before the window closes even if it would overrun."""
    slots = list(generate_slots(time(9, 0), time(10, 0), timedelta(minutes=45)))
    assert slots == [time(9, 0), time(9, 45)]


def test_generate_slots_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        list(generate_slots(time(9, 0), time(10, 0), timedelta(0)))


@pytest.mark.parametrize("candidate", [time(9, 0), time(10, 30), time(16, 30)])
def test_aligned_slots_inside_window_are_valid(calendar, candidate):
    assert calendar.is_valid_slot(candidate)


@pytest.mark.parametrize(
    "candidate",
    [
        time(9, 15),  # off grid
        time(8, 0),  # before opening
        time(8, 30),
        time(17, 0),  # closing time itself
        time(17, 30),
        time(10, 0, 30),  # seconds off grid
    ],
)
def test_misaligned_or_out_of_window_slots_are_invalid(calendar, candidate):
    assert not calendar.is_valid_slot(candidate)


def test_custom_window_is_respected():
    calendar = SlotCalendar(
        OfficeHours(start=time(7, 45), end=time(9, 0), slot_duration=timedelta(minutes=15))
    )
    assert calendar.slots() == [time(7, 45), time(8, 0), time(8, 15), time(8, 30), time(8, 45)]
    assert calendar.is_valid_slot(time(8, 15))
    assert not calendar.is_valid_slot(time(8, 10))


def test_office_hours_reject_empty_window():
    with pytest.raises(ValueError):
        OfficeHours(start=time(17, 0), end=time(9, 0), slot_duration=HALF_HOUR)


def test_describe_mentions_window(calendar):
    assert calendar.describe() == "30-minute interval between 09:00 and 17:00"
