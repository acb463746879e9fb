"""Модели данных"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from services.errors import ValidationError

MAX_MINUTE_OF_DAY = 24 * 60 - 1


class ReservationStatus(str, Enum):
    """Статусы записи"""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


# Статусы, которые занимают время специалиста
BLOCKING_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED}
)


def _check_minute(value: int, name: str):
    if not isinstance(value, int) or not 0 <= value <= MAX_MINUTE_OF_DAY:
        raise ValidationError(f"{name} must be a minute of day (0..{MAX_MINUTE_OF_DAY}), got {value!r}")


@dataclass(frozen=True)
class Break:
    """Перерыв внутри рабочего дня, [start, end) в минутах суток"""

    start: int
    end: int

    def __post_init__(self):
        _check_minute(self.start, "break start")
        _check_minute(self.end, "break end")
        if self.start >= self.end:
            raise ValidationError(f"Break start must be before end: {self.start} >= {self.end}")


@dataclass(frozen=True)
class AvailabilityRule:
    """Недельное правило доступности для одного дня недели

    ``day_of_week``: 0 = воскресенье ... 6 = суббота.
    ``start_time``/``end_time``: минуты суток.
    ``breaks``: упорядоченные непересекающиеся перерывы внутри рабочего окна.
    """

    day_of_week: int
    start_time: int
    end_time: int
    is_available: bool = True
    breaks: tuple[Break, ...] = ()

    def __post_init__(self):
        if not isinstance(self.day_of_week, int) or not 0 <= self.day_of_week <= 6:
            raise ValidationError(f"day_of_week must be in 0..6, got {self.day_of_week!r}")
        _check_minute(self.start_time, "start_time")
        _check_minute(self.end_time, "end_time")
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"start_time must be before end_time: {self.start_time} >= {self.end_time}"
            )

        breaks = tuple(self.breaks)
        object.__setattr__(self, "breaks", breaks)
        previous_end = None
        for brk in breaks:
            if brk.start < self.start_time or brk.end > self.end_time:
                raise ValidationError(f"Break {brk.start}-{brk.end} is outside working hours")
            if previous_end is not None and brk.start < previous_end:
                raise ValidationError("Breaks must be sorted and must not overlap")
            previous_end = brk.end


@dataclass(frozen=True)
class BlockedPeriod:
    """Период отпуска/недоступности, даты включительно"""

    professional_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValidationError("Blocked period end date must not be before its start date")

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class Professional:
    """Профиль специалиста"""

    id: Optional[int]
    user_id: int
    display_name: str
    hourly_rate: float
    slot_granularity: int = 60
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass
class Service:
    """Модель услуги специалиста"""

    id: Optional[int]
    professional_id: int
    name: str
    duration_minutes: int
    price: float
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass
class Reservation:
    """Запись клиента к специалисту, интервал [start_at, end_at)"""

    id: Optional[int]
    professional_id: int
    client_id: int
    start_at: datetime
    end_at: datetime
    total_price: float
    status: ReservationStatus = ReservationStatus.PENDING
    service_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    reminder_sent: bool = False
    review_requested: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.start_at >= self.end_at:
            raise ValidationError("Reservation start must be before its end")
        self.status = ReservationStatus(self.status)

    @property
    def blocks_time(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @property
    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() // 60)


@dataclass
class Review:
    """Отзыв клиента, один на запись"""

    id: Optional[int]
    reservation_id: int
    client_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ProStats:
    """Статистика специалиста"""

    status_counts: dict = field(default_factory=dict)
    revenue: float = 0.0
    avg_rating: float = 0.0
    reviews_count: int = 0
