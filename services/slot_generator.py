"""Генерация слотов по недельному расписанию специалиста

Чистые функции без обращения к БД и часам: всё, включая "сейчас",
передаётся вызывающей стороной.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from config import DEFAULT_SERVICE_DURATION, DEFAULT_SLOT_GRANULARITY, TIMEZONE
from database.models import AvailabilityRule, BlockedPeriod, Break
from services.errors import ValidationError
from utils.datetime_utils import combine_local, day_of_week, local_time_exists

# Расписание по умолчанию, если специалист не задал ни одного правила:
# воскресенье-четверг 09:00-18:00
DEFAULT_RULES = tuple(
    AvailabilityRule(day_of_week=dow, start_time=9 * 60, end_time=18 * 60)
    for dow in range(0, 5)
)


def is_blocked(blocked_periods: Iterable[BlockedPeriod], target_date: date) -> bool:
    """Попадает ли дата в один из заблокированных периодов"""
    return any(period.covers(target_date) for period in blocked_periods)


def rule_for_day(rules: Sequence[AvailabilityRule], target_date: date) -> Optional[AvailabilityRule]:
    """Правило на день недели даты (с подстановкой расписания по умолчанию)"""
    effective = rules if rules else DEFAULT_RULES
    dow = day_of_week(target_date)
    for rule in effective:
        if rule.day_of_week == dow:
            return rule
    return None


def _crosses_break(start: int, end: int, breaks: Sequence[Break]) -> bool:
    return any(start < brk.end and brk.start < end for brk in breaks)


def generate_slots(
    rules: Sequence[AvailabilityRule],
    blocked_periods: Sequence[BlockedPeriod],
    target_date: date,
    now: datetime,
    slot_granularity: int = DEFAULT_SLOT_GRANULARITY,
    service_duration: int = DEFAULT_SERVICE_DURATION,
    tz=TIMEZONE,
) -> list[int]:
    """Кандидаты на начало записи в указанный день

    Args:
        rules: Правила доступности специалиста (пусто = расписание по умолчанию)
        blocked_periods: Заблокированные периоды специалиста
        target_date: Календарная дата
        now: Текущий момент (aware), слоты не позже него отбрасываются
        slot_granularity: Шаг между началами слотов, минуты
        service_duration: Длительность услуги, минуты
        tz: Таймзона специалиста

    Returns:
        Возрастающий список начал слотов в минутах суток
    """
    if slot_granularity <= 0:
        raise ValidationError(f"slot_granularity must be positive, got {slot_granularity}")
    if service_duration <= 0:
        raise ValidationError(f"service_duration must be positive, got {service_duration}")

    # Блокировка сильнее любого правила
    if is_blocked(blocked_periods, target_date):
        return []

    rule = rule_for_day(rules, target_date)
    if rule is None or not rule.is_available:
        return []

    slots = []
    start = rule.start_time
    while start + service_duration <= rule.end_time:
        end = start + service_duration
        # Пропущенное при переводе часов время не предлагаем
        if not _crosses_break(start, end, rule.breaks) and local_time_exists(target_date, start, tz):
            if combine_local(target_date, start, tz) > now:
                slots.append(start)
        start += slot_granularity

    return slots
