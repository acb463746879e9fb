"""Отсечение слотов, занятых существующими записями"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from config import TIMEZONE
from database.models import Reservation
from utils.datetime_utils import combine_local


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Пересечение полуоткрытых интервалов [a_start, a_end) и [b_start, b_end)

    Соприкосновение концами пересечением не считается.
    """
    return a_start < b_end and b_start < a_end


def blocking_reservations(
    reservations: Iterable[Reservation], professional_id: Optional[int] = None
) -> list[Reservation]:
    """Записи, занимающие время (PENDING/CONFIRMED/COMPLETED)"""
    return [
        r for r in reservations
        if r.blocks_time and (professional_id is None or r.professional_id == professional_id)
    ]


def filter_available(
    candidate_slots: Sequence[int],
    target_date: date,
    service_duration: int,
    existing_reservations: Sequence[Reservation],
    professional_id: Optional[int] = None,
    tz=TIMEZONE,
) -> list[int]:
    """Оставить только слоты без пересечения с активными записями

    Args:
        candidate_slots: Начала слотов (минуты суток) от generate_slots
        target_date: День, к которому относятся слоты
        service_duration: Длительность услуги, минуты
        existing_reservations: Записи специалиста за этот день
        professional_id: Если задан, учитываются только записи этого специалиста
        tz: Таймзона специалиста

    Returns:
        Подмножество candidate_slots в исходном порядке
    """
    busy = blocking_reservations(existing_reservations, professional_id)
    duration = timedelta(minutes=service_duration)

    available = []
    for slot in candidate_slots:
        slot_start = combine_local(target_date, slot, tz)
        slot_end = slot_start + duration
        if not any(overlaps(slot_start, slot_end, r.start_at, r.end_at) for r in busy):
            available.append(slot)
    return available
