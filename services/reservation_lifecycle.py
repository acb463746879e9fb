"""
Жизненный цикл записи.

Таблица допустимых переходов статусов и того, кто может их выполнять:

    PENDING   -> CONFIRMED | REJECTED | CANCELLED
    CONFIRMED -> COMPLETED | CANCELLED

COMPLETED, CANCELLED и REJECTED терминальны. Побочные эффекты
(уведомления, напоминания, отзывы) здесь только описываются
через TransitionOutcome, выполняет их BookingService.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from database.models import Reservation, ReservationStatus
from services.errors import AuthorizationError, InvalidTransitionError


class Actor(str, Enum):
    """Кто инициирует переход"""

    PROFESSIONAL = "professional"
    CLIENT = "client"
    SYSTEM = "system"  # переходы по времени (планировщик)


class NotificationEvent(str, Enum):
    """События для отправки уведомлений"""

    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    REMINDER = "REMINDER"


@dataclass(frozen=True)
class Transition:
    """Один допустимый переход"""

    from_status: ReservationStatus
    to_status: ReservationStatus
    actors: frozenset


@dataclass(frozen=True)
class TransitionOutcome:
    """Результат перехода и побочные эффекты, которые он разрешает"""

    reservation: Reservation
    previous_status: ReservationStatus
    event: NotificationEvent
    notify: Actor  # кого уведомить
    frees_slot: bool
    enables_review: bool


_PRO = frozenset({Actor.PROFESSIONAL})
_PRO_OR_SYSTEM = frozenset({Actor.PROFESSIONAL, Actor.SYSTEM})
_EITHER_PARTY = frozenset({Actor.PROFESSIONAL, Actor.CLIENT})

TRANSITIONS: list[Transition] = [
    Transition(ReservationStatus.PENDING, ReservationStatus.CONFIRMED, _PRO),
    Transition(ReservationStatus.PENDING, ReservationStatus.REJECTED, _PRO),
    Transition(ReservationStatus.PENDING, ReservationStatus.CANCELLED, _EITHER_PARTY),
    Transition(ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED, _PRO_OR_SYSTEM),
    Transition(ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED, _EITHER_PARTY),
]

TERMINAL_STATUSES = frozenset(
    {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED, ReservationStatus.REJECTED}
)


def find_transition(
    from_status: ReservationStatus, to_status: ReservationStatus
) -> Optional[Transition]:
    for t in TRANSITIONS:
        if t.from_status == from_status and t.to_status == to_status:
            return t
    return None


def allowed_targets(status: ReservationStatus, actor: Optional[Actor] = None) -> list[ReservationStatus]:
    """Статусы, в которые можно перейти из status (опционально для конкретного актора)"""
    return [
        t.to_status for t in TRANSITIONS
        if t.from_status == status and (actor is None or actor in t.actors)
    ]


def can_transition(reservation: Reservation, to_status: ReservationStatus, actor: Actor) -> bool:
    t = find_transition(reservation.status, ReservationStatus(to_status))
    return t is not None and actor in t.actors


def _notify_target(to_status: ReservationStatus, actor: Actor) -> Actor:
    if to_status == ReservationStatus.CANCELLED:
        # Уведомляем другую сторону
        return Actor.CLIENT if actor == Actor.PROFESSIONAL else Actor.PROFESSIONAL
    return Actor.CLIENT


def apply_transition(
    reservation: Reservation,
    to_status: ReservationStatus,
    actor: Actor,
    reason: Optional[str] = None,
) -> TransitionOutcome:
    """
    Выполнить переход статуса.

    Исходная запись не изменяется: возвращается копия с новым статусом.

    Raises:
        InvalidTransitionError: переход отсутствует в таблице.
        AuthorizationError: переход есть, но актор не может его выполнить.
    """
    to_status = ReservationStatus(to_status)
    transition = find_transition(reservation.status, to_status)

    if transition is None:
        valid = [s.value for s in allowed_targets(reservation.status)]
        raise InvalidTransitionError(
            f"No transition from '{reservation.status.value}' to '{to_status.value}'. "
            f"Valid targets: {valid}",
            reservation_id=reservation.id,
            current_status=reservation.status,
        )

    if actor not in transition.actors:
        raise AuthorizationError(
            f"{actor.value} may not move reservation from "
            f"'{reservation.status.value}' to '{to_status.value}'",
            reservation_id=reservation.id,
        )

    updated = replace(
        reservation,
        status=to_status,
        rejection_reason=reason if to_status == ReservationStatus.REJECTED else reservation.rejection_reason,
    )

    logging.debug(
        f"Reservation {reservation.id}: {reservation.status.value} -> {to_status.value} by {actor.value}"
    )

    return TransitionOutcome(
        reservation=updated,
        previous_status=reservation.status,
        event=NotificationEvent(to_status.value),
        notify=_notify_target(to_status, actor),
        frees_slot=to_status in (ReservationStatus.CANCELLED, ReservationStatus.REJECTED),
        enables_review=to_status == ReservationStatus.COMPLETED,
    )
