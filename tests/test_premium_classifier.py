"""Tests for premium bucket classification."""

from datetime import date, time, timedelta
from decimal import Decimal
from itertools import product
from uuid import uuid4

import pytest

from hris_payroll.calculators.premium_classifier import PremiumClassifier
from hris_payroll.calculators.time_segment import TimeSegmentCalculator
from hris_payroll.calculators.types import (
    HolidayType,
    PayrollBreakdown,
    PremiumKey,
    ScheduleInfo,
)

MONDAY = date(2025, 6, 2)
TUESDAY = MONDAY + timedelta(days=1)


@pytest.fixture
def classifier(config):
    return PremiumClassifier(config)


@pytest.fixture
def segment_for(config, tz, no_break_schedule, at):
    """Segment for a Monday shift given as (start hour, end hour) with wraparound."""
    calculator = TimeSegmentCalculator(config, tz)

    def _segment(start: int, end: int, schedule: ScheduleInfo = no_break_schedule):
        end_day = TUESDAY if end <= start else MONDAY
        return calculator.compute(at(MONDAY, start), at(end_day, end), schedule, MONDAY)

    return _segment


class TestPremiumKey:
    """Test bucket naming and the combination table."""

    def test_plain_names(self):
        assert PremiumKey().name == "regular"
        assert PremiumKey(is_overtime=True).name == "regular_overtime"
        assert PremiumKey(is_night_diff=True).name == "night_diff"
        assert PremiumKey(is_overtime=True, is_night_diff=True).name == "night_diff_overtime"

    def test_stacked_names(self):
        assert PremiumKey(is_rest_day=True).name == "rest_day"
        assert PremiumKey(holiday_type=HolidayType.SPECIAL).name == "special_holiday"
        assert (
            PremiumKey(True, HolidayType.REGULAR, True, False).name
            == "regular_holiday_rest_day_overtime"
        )
        assert (
            PremiumKey(True, HolidayType.REGULAR, True, True).name
            == "night_diff_regular_holiday_rest_day_overtime"
        )

    def test_all_keys_has_every_combination_once(self):
        keys = PremiumKey.all_keys()
        names = [k.name for k in keys]

        assert len(keys) == 2 * 3 * 2 * 2
        assert len(set(keys)) == len(keys)
        assert len(set(names)) == len(names)

    def test_from_name_inverts_name(self):
        for key in PremiumKey.all_keys():
            assert PremiumKey.from_name(key.name) == key

    def test_from_name_rejects_unknown(self):
        with pytest.raises(ValueError):
            PremiumKey.from_name("double_overtime")

    def test_day_key_strips_hour_axes(self):
        key = PremiumKey(True, HolidayType.SPECIAL, True, True)
        assert key.day_key == PremiumKey(True, HolidayType.SPECIAL)


class TestClassify:
    """Test how worked hours are split into buckets."""

    def test_regular_day(self, classifier, segment_for):
        breakdown = classifier.classify(segment_for(8, 16), is_rest_day=False)

        assert breakdown.buckets == {PremiumKey(): Decimal("8.00")}
        assert breakdown.regular_hours == Decimal("8.00")
        assert breakdown.overtime_hours == 0

    def test_overtime_beyond_standard_hours(self, classifier, segment_for):
        breakdown = classifier.classify(segment_for(8, 18), is_rest_day=False)

        assert breakdown.hours(PremiumKey()) == Decimal("8.00")
        assert breakdown.hours(PremiumKey(is_overtime=True)) == Decimal("2.00")

    def test_night_hours_inside_regular_hours(self, classifier, segment_for):
        breakdown = classifier.classify(segment_for(20, 2), is_rest_day=False)

        assert breakdown.hours(PremiumKey()) == Decimal("2.00")
        assert breakdown.hours(PremiumKey(is_night_diff=True)) == Decimal("4.00")
        assert breakdown.overtime_hours == 0

    def test_night_hours_split_between_regular_and_overtime(self, classifier, segment_for):
        """18:00-04:00: overtime is the last 2 hours, both at night."""
        breakdown = classifier.classify(segment_for(18, 4), is_rest_day=False)

        assert breakdown.hours(PremiumKey()) == Decimal("4.00")
        assert breakdown.hours(PremiumKey(is_night_diff=True)) == Decimal("4.00")
        assert breakdown.hours(PremiumKey(is_overtime=True, is_night_diff=True)) == Decimal("2.00")
        assert breakdown.hours(PremiumKey(is_overtime=True)) == 0

    def test_ultimate_stack(self, classifier, segment_for):
        """Rest day + regular holiday, 14:00-02:00: 8 regular, 4 overtime at night."""
        breakdown = classifier.classify(
            segment_for(14, 2),
            is_rest_day=True,
            holiday_type=HolidayType.REGULAR,
            holiday_name="Independence Day",
        )
        day = PremiumKey(True, HolidayType.REGULAR)

        assert breakdown.hours(day) == Decimal("8.00")
        assert breakdown.hours(PremiumKey(True, HolidayType.REGULAR, True, True)) == Decimal("4.00")
        assert breakdown.premium_stack_count == 3
        assert breakdown.edge_case_flags["is_ultimate_case_regular"]
        assert not breakdown.edge_case_flags["is_ultimate_case_special"]

    def test_employee_standard_hours(self, classifier, segment_for):
        breakdown = classifier.classify(
            segment_for(8, 16), is_rest_day=False, standard_daily_hours=Decimal("6")
        )

        assert breakdown.hours(PremiumKey()) == Decimal("6")
        assert breakdown.hours(PremiumKey(is_overtime=True)) == Decimal("2.00")

    def test_zero_hours_has_no_buckets(self, classifier, config, tz, no_break_schedule, at):
        segment = TimeSegmentCalculator(config, tz).compute(
            at(MONDAY, 17), at(MONDAY, 8), no_break_schedule
        )
        breakdown = classifier.classify(segment, is_rest_day=False)

        assert breakdown.buckets == {}
        assert breakdown.total_hours == 0

    @pytest.mark.parametrize(
        "is_rest_day,holiday_type,shift",
        [
            (rest, holiday, shift)
            for rest, holiday in product((False, True), tuple(HolidayType))
            for shift in ((8, 16), (8, 20), (20, 2), (18, 4), (14, 2), (22, 6), (6, 23))
        ],
    )
    def test_buckets_partition_total_hours(
        self, classifier, segment_for, is_rest_day, holiday_type, shift
    ):
        segment = segment_for(*shift)
        breakdown = classifier.classify(segment, is_rest_day=is_rest_day, holiday_type=holiday_type)

        assert breakdown.total_hours == segment.total_hours
        assert breakdown.night_diff_hours == segment.night_differential_hours
        assert all(hours > 0 for hours in breakdown.buckets.values())
        assert all(
            k.is_rest_day == is_rest_day and k.holiday_type is holiday_type
            for k in breakdown.buckets
        )

    def test_classify_day_uses_resolved_calendar(
        self, classifier, segment_for, make_resolver, independence_day
    ):
        day = make_resolver([independence_day]).resolve(uuid4(), independence_day.date)
        breakdown = classifier.classify_day(segment_for(8, 16), day)

        assert breakdown.holiday_type is HolidayType.REGULAR
        assert breakdown.holiday_name == "Independence Day"
        assert breakdown.hours(PremiumKey(holiday_type=HolidayType.REGULAR)) == Decimal("8.00")


class TestBreakInsideOvertime:
    """Overtime is the last worked hours, so a late break moves its start earlier."""

    @staticmethod
    def walk_night_hours(time_in, time_out, break_start, break_end, overtime_hours):
        """(night regular, night overtime) by walking the shift minute by minute."""
        worked = []
        cursor = time_in
        while cursor < time_out:
            if not break_start <= cursor < break_end:
                worked.append(cursor)
            cursor += timedelta(minutes=1)
        split = len(worked) - int(overtime_hours * 60)
        night = [m.hour >= 22 or m.hour < 6 for m in worked]
        return Decimal(sum(night[:split])) / 60, Decimal(sum(night[split:])) / 60

    def test_break_in_tail_of_night_shift(self, classifier, segment_for):
        """20:00-08:00 with a 06:00-07:00 break: overtime is 04:00-06:00 and 07:00-08:00."""
        schedule = ScheduleInfo(
            shift_start=time(20, 0),
            shift_end=time(8, 0),
            break_start=time(6, 0),
            break_end=time(7, 0),
        )
        breakdown = classifier.classify(segment_for(20, 8, schedule), is_rest_day=False)

        assert breakdown.hours(PremiumKey(is_overtime=True, is_night_diff=True)) == Decimal("2.00")
        assert breakdown.hours(PremiumKey(is_overtime=True)) == Decimal("1.00")
        assert breakdown.hours(PremiumKey(is_night_diff=True)) == Decimal("6.00")
        assert breakdown.hours(PremiumKey()) == Decimal("2.00")

    @pytest.mark.parametrize(
        "start,length,break_offset",
        [
            (start, length, offset)
            for start in (16, 18, 20, 21, 22, 23)
            for length in range(9, 15)
            for offset in range(1, length - 1)
        ],
    )
    def test_matches_minute_walk(self, classifier, segment_for, at, start, length, break_offset):
        shift_start = at(MONDAY, start)
        break_start = shift_start + timedelta(hours=break_offset)
        schedule = ScheduleInfo(
            shift_start=time(start, 0),
            shift_end=time((start + length) % 24, 0),
            break_start=break_start.time(),
            break_end=(break_start + timedelta(hours=1)).time(),
        )
        segment = segment_for(start, (start + length) % 24, schedule)
        breakdown = classifier.classify(segment, is_rest_day=False)

        night_regular, night_overtime = self.walk_night_hours(
            segment.time_in,
            segment.time_out,
            break_start,
            break_start + timedelta(hours=1),
            breakdown.overtime_hours,
        )

        assert breakdown.hours(PremiumKey(is_overtime=True, is_night_diff=True)) == night_overtime
        assert breakdown.hours(PremiumKey(is_night_diff=True)) == night_regular


class TestBreakdownSerialization:
    """Test the stored JSON shape."""

    def test_to_dict_shape(self, classifier, segment_for):
        breakdown = classifier.classify(
            segment_for(14, 2), is_rest_day=True, holiday_type=HolidayType.REGULAR
        )
        data = breakdown.to_dict()

        assert data["total_hours"] == 12.0
        assert data["overtime"]["total"] == 4.0
        assert data["overtime"]["night_diff_regular_holiday_rest_day_overtime"] == 4.0
        assert data["premiums"]["night_differential"] == {
            "total": 4.0,
            "regular": 0.0,
            "overtime": 4.0,
        }
        assert data["premiums"]["rest_day"]["total"] == 12.0
        assert data["premiums"]["rest_day"]["pure_rest_day"] == 0.0
        assert data["premiums"]["holidays"]["regular_holiday_rest_day"] == {
            "total": 12.0,
            "regular": 8.0,
            "overtime": 4.0,
        }
        assert data["edge_case_flags"]["premium_stack_count"] == 3

    def test_from_dict_restores_buckets(self, classifier, segment_for):
        breakdown = classifier.classify(
            segment_for(18, 4), is_rest_day=True, holiday_type=HolidayType.SPECIAL
        )
        restored = PayrollBreakdown.from_dict(breakdown.to_dict())

        assert restored.buckets == breakdown.buckets
        assert restored.is_rest_day
        assert restored.holiday_type is HolidayType.SPECIAL

    def test_classification_is_deterministic(self, classifier, segment_for):
        first = classifier.classify(segment_for(18, 4), is_rest_day=True)
        second = classifier.classify(segment_for(18, 4), is_rest_day=True)

        assert first == second
        assert first.to_dict() == second.to_dict()
