"""Тесты генерации слотов

Все даты фиксированы, "сейчас" передаётся явно: 2030-01-06 — воскресенье.
"""

from datetime import date, datetime

import pytest
import pytz

from config import TIMEZONE
from database.models import AvailabilityRule, BlockedPeriod, Break
from services.errors import ValidationError
from services.slot_generator import DEFAULT_RULES, generate_slots, rule_for_day
from utils.datetime_utils import combine_local

SUNDAY = date(2030, 1, 6)
FRIDAY = date(2030, 1, 11)
NOW = TIMEZONE.localize(datetime(2030, 1, 1, 8, 0))


def hours(*minutes_list):
    return [m // 60 for m in minutes_list]


@pytest.fixture
def sunday_with_lunch():
    return [
        AvailabilityRule(
            day_of_week=0,
            start_time=9 * 60,
            end_time=18 * 60,
            breaks=(Break(13 * 60, 14 * 60),),
        )
    ]


@pytest.mark.unit
class TestGenerateSlots:
    """Кандидаты на начало записи"""

    def test_hourly_slots_skip_lunch_break(self, sunday_with_lunch):
        slots = generate_slots(sunday_with_lunch, [], SUNDAY, NOW)

        assert hours(*slots) == [9, 10, 11, 12, 14, 15, 16, 17]

    def test_blocked_day_returns_nothing(self, sunday_with_lunch):
        blocked = [BlockedPeriod(professional_id=1, start_date=SUNDAY, end_date=SUNDAY)]

        assert generate_slots(sunday_with_lunch, blocked, SUNDAY, NOW) == []

    def test_multi_day_block_is_inclusive(self, sunday_with_lunch):
        blocked = [
            BlockedPeriod(professional_id=1, start_date=date(2030, 1, 1), end_date=SUNDAY)
        ]

        assert generate_slots(sunday_with_lunch, blocked, SUNDAY, NOW) == []
        assert generate_slots(sunday_with_lunch, blocked, date(2030, 1, 13), NOW) != []

    def test_day_without_rule_is_closed(self, sunday_with_lunch):
        monday = date(2030, 1, 7)

        assert generate_slots(sunday_with_lunch, [], monday, NOW) == []

    def test_unavailable_rule_is_closed(self):
        rules = [AvailabilityRule(day_of_week=0, start_time=540, end_time=1080, is_available=False)]

        assert generate_slots(rules, [], SUNDAY, NOW) == []

    def test_whole_duration_must_fit_before_end(self, sunday_with_lunch):
        slots = generate_slots(sunday_with_lunch, [], SUNDAY, NOW, service_duration=90)

        # 12:00-13:30 и 13:00-14:30 задевают перерыв, 17:00-18:30 выходит за конец дня
        assert slots == [540, 600, 660, 840, 900, 960]
        for start in slots:
            assert start + 90 <= 18 * 60

    def test_no_slot_crosses_a_break(self, sunday_with_lunch):
        slots = generate_slots(
            sunday_with_lunch, [], SUNDAY, NOW, slot_granularity=15, service_duration=45
        )

        for start in slots:
            end = start + 45
            assert not (start < 14 * 60 and 13 * 60 < end)

    def test_granularity_controls_step(self, sunday_with_lunch):
        slots = generate_slots(
            sunday_with_lunch, [], SUNDAY, NOW, slot_granularity=30, service_duration=60
        )

        assert slots[:3] == [540, 570, 600]
        assert 750 not in slots  # 12:30-13:30 задевает перерыв
        assert slots[-1] == 17 * 60

    def test_past_slots_are_dropped(self, sunday_with_lunch):
        now = TIMEZONE.localize(datetime(2030, 1, 6, 11, 0))

        slots = generate_slots(sunday_with_lunch, [], SUNDAY, now)

        # 11:00 == now не предлагается
        assert hours(*slots) == [12, 14, 15, 16, 17]

    def test_deterministic(self, sunday_with_lunch):
        first = generate_slots(sunday_with_lunch, [], SUNDAY, NOW, slot_granularity=15)
        second = generate_slots(sunday_with_lunch, [], SUNDAY, NOW, slot_granularity=15)

        assert first == second
        assert first == sorted(set(first))

    def test_slots_stay_inside_working_hours(self):
        rules = [AvailabilityRule(day_of_week=0, start_time=10 * 60 + 30, end_time=12 * 60)]

        slots = generate_slots(rules, [], SUNDAY, NOW, slot_granularity=15, service_duration=30)

        assert slots[0] == 10 * 60 + 30
        assert slots[-1] == 11 * 60 + 30

    @pytest.mark.parametrize("granularity,duration", [(0, 60), (60, 0), (-15, 60)])
    def test_non_positive_parameters_rejected(self, sunday_with_lunch, granularity, duration):
        with pytest.raises(ValidationError):
            generate_slots(
                sunday_with_lunch, [], SUNDAY, NOW,
                slot_granularity=granularity, service_duration=duration,
            )

    def test_skipped_dst_hour_not_offered(self):
        # 31.03.2030 в Берлине часы переводятся с 02:00 сразу на 03:00
        berlin = pytz.timezone("Europe/Berlin")
        spring_forward = date(2030, 3, 31)
        rules = [AvailabilityRule(day_of_week=0, start_time=60, end_time=240)]

        slots = generate_slots(
            rules, [], spring_forward, NOW, slot_granularity=30, service_duration=30, tz=berlin
        )

        assert slots == [60, 90, 180, 210]
        instants = [combine_local(spring_forward, m, berlin) for m in slots]
        assert len(set(instants)) == len(instants)


@pytest.mark.unit
class TestDefaultSchedule:
    """Расписание по умолчанию, когда правил нет"""

    def test_sunday_to_thursday_nine_to_six(self):
        slots = generate_slots([], [], SUNDAY, NOW)

        assert hours(*slots) == list(range(9, 18))

    def test_friday_is_closed(self):
        assert generate_slots([], [], FRIDAY, NOW) == []

    def test_defaults_ignored_when_any_rule_exists(self):
        rules = [AvailabilityRule(day_of_week=1, start_time=540, end_time=600)]

        assert rule_for_day(rules, SUNDAY) is None
        assert len(DEFAULT_RULES) == 5


@pytest.mark.unit
class TestRuleValidation:
    """Проверки модели правил"""

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            AvailabilityRule(day_of_week=0, start_time=600, end_time=540)

    def test_break_outside_hours_rejected(self):
        with pytest.raises(ValidationError):
            AvailabilityRule(
                day_of_week=0, start_time=540, end_time=1080, breaks=(Break(500, 560),)
            )

    def test_overlapping_breaks_rejected(self):
        with pytest.raises(ValidationError):
            AvailabilityRule(
                day_of_week=0,
                start_time=540,
                end_time=1080,
                breaks=(Break(700, 760), Break(750, 800)),
            )

    def test_day_of_week_range(self):
        with pytest.raises(ValidationError):
            AvailabilityRule(day_of_week=7, start_time=540, end_time=1080)
