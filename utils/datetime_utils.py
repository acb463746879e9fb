"""Утилиты для работы с датами и временем"""

from datetime import date, datetime, time, timedelta

import pytz

from config import TIMEZONE

DB_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
MINUTES_PER_DAY = 24 * 60


def now_local() -> datetime:
    """Текущее время в timezone приложения (aware)"""
    return datetime.now(TIMEZONE)


def localize_datetime(dt: datetime, tz=TIMEZONE) -> datetime:
    """Безопасная локализация datetime с учетом DST

    Args:
        dt: Наивный datetime объект
        tz: pytz-таймзона

    Returns:
        Aware datetime в указанной таймзоне
    """
    if dt.tzinfo is not None:
        # Уже aware - конвертируем в нужную зону
        return dt.astimezone(tz)

    # Используем is_dst=None чтобы получить исключение при неоднозначности
    try:
        return tz.localize(dt, is_dst=None)
    except pytz.exceptions.AmbiguousTimeError:
        # Время попадает на переход часов - используем стандартное время
        return tz.localize(dt, is_dst=False)
    except pytz.exceptions.NonExistentTimeError:
        # Время не существует (пропущено при переходе) - сдвигаем на час вперед
        return tz.localize(dt + timedelta(hours=1), is_dst=True)


def combine_local(day: date, minute_of_day: int, tz=TIMEZONE) -> datetime:
    """Дата + минута суток -> aware datetime

    Args:
        day: Календарная дата
        minute_of_day: Минута от начала суток (0..1439)
        tz: pytz-таймзона

    Returns:
        Aware datetime начала слота
    """
    naive = datetime.combine(day, time()) + timedelta(minutes=minute_of_day)
    return localize_datetime(naive, tz)


def local_time_exists(day: date, minute_of_day: int, tz=TIMEZONE) -> bool:
    """Есть ли такое локальное время (при переводе часов вперёд часть суток пропадает)"""
    naive = datetime.combine(day, time()) + timedelta(minutes=minute_of_day)
    try:
        tz.localize(naive, is_dst=None)
    except pytz.exceptions.NonExistentTimeError:
        return False
    except pytz.exceptions.AmbiguousTimeError:
        return True
    return True


def minute_of_day(dt: datetime) -> int:
    """Минута суток для локального времени"""
    return dt.hour * 60 + dt.minute


def day_of_week(day: date) -> int:
    """День недели, где 0 = воскресенье"""
    return (day.weekday() + 1) % 7


def day_bounds(day: date, tz=TIMEZONE) -> tuple[datetime, datetime]:
    """Границы суток [начало, начало следующего дня) в aware datetime"""
    return combine_local(day, 0, tz), combine_local(day + timedelta(days=1), 0, tz)


def get_date_range(start_date: date, days: int) -> list:
    """Генерация диапазона дат

    Args:
        start_date: Начальная дата
        days: Количество дней

    Returns:
        Список дат
    """
    return [start_date + timedelta(days=i) for i in range(days)]


def to_utc(dt: datetime) -> datetime:
    """Конвертация в UTC для хранения в БД

    Args:
        dt: Локальное время

    Returns:
        UTC datetime
    """
    if dt.tzinfo is None:
        dt = localize_datetime(dt)
    return dt.astimezone(pytz.UTC)


def from_utc(dt: datetime) -> datetime:
    """Конвертация из UTC в локальное время

    Args:
        dt: UTC datetime

    Returns:
        Локальное aware datetime
    """
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(TIMEZONE)


def to_db(dt: datetime) -> str:
    """Сериализация момента времени для колонок *_at (UTC, сортируемая строка)"""
    return to_utc(dt).strftime(DB_DATETIME_FORMAT)


def from_db(value: str) -> datetime:
    """Десериализация значения колонки *_at в локальное aware datetime"""
    return from_utc(datetime.strptime(value, DB_DATETIME_FORMAT))
