"""Вспомогательные функции"""

import re
from datetime import date, datetime

from config import CURRENCY, DAY_NAMES

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def format_date(date_obj) -> str:
    """Форматирование даты для отображения"""
    if isinstance(date_obj, datetime):
        date_obj = date_obj.date()
    day_name = DAY_NAMES[(date_obj.weekday() + 1) % 7]
    return f"{date_obj.strftime('%d.%m.%Y')} ({day_name})"


def format_minutes(minute_of_day: int) -> str:
    """Минута суток -> 'HH:MM'"""
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def parse_hhmm(value: str) -> int:
    """'HH:MM' -> минута суток

    Raises:
        ValueError: если строка не является временем суток
    """
    match = _HHMM_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {value!r}")
    return hours * 60 + minutes


def parse_date(value: str) -> date:
    """'YYYY-MM-DD' -> date"""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def format_price(amount: float) -> str:
    """Цена для отображения"""
    if float(amount).is_integer():
        return f"{int(amount)} {CURRENCY}"
    return f"{amount:.2f} {CURRENCY}"


def format_duration(minutes: int) -> str:
    """Отображение длительности в читаемом формате"""
    hours, rest = divmod(minutes, 60)
    if hours and rest:
        return f"{hours} ч {rest} мин"
    elif hours:
        return f"{hours} ч"
    return f"{rest} мин"
