"""Клавиатуры для специалистов"""

from datetime import date, timedelta
from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from config import ALLOWED_SLOT_GRANULARITIES
from database.models import BlockedPeriod, Reservation, ReservationStatus
from services.reservation_lifecycle import Actor, allowed_targets

ACTION_LABELS = {
    ReservationStatus.CONFIRMED: "✅ Подтвердить",
    ReservationStatus.REJECTED: "❌ Отклонить",
    ReservationStatus.COMPLETED: "🏁 Завершить",
    ReservationStatus.CANCELLED: "🚫 Отменить",
}


def reservation_actions_keyboard(reservation: Reservation) -> InlineKeyboardMarkup:
    """Действия специалиста над записью (только разрешённые переходы)"""
    buttons = [
        InlineKeyboardButton(
            text=ACTION_LABELS[target],
            callback_data=f"pro_act:{reservation.id}:{target.value}",
        )
        for target in allowed_targets(reservation.status, Actor.PROFESSIONAL)
    ]
    rows = [buttons[i:i + 2] for i in range(0, len(buttons), 2)]
    return InlineKeyboardMarkup(inline_keyboard=rows)


def agenda_navigation_keyboard(day: date) -> InlineKeyboardMarkup:
    """Переход между днями расписания"""
    prev_day = day - timedelta(days=1)
    next_day = day + timedelta(days=1)
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="◀️", callback_data=f"agenda:{prev_day.isoformat()}"),
                InlineKeyboardButton(text=day.strftime("%d.%m"), callback_data="ignore"),
                InlineKeyboardButton(text="▶️", callback_data=f"agenda:{next_day.isoformat()}"),
            ],
            [InlineKeyboardButton(text="📊 Неделя", callback_data="pro_week")],
        ]
    )


def granularity_keyboard(current: int) -> InlineKeyboardMarkup:
    """Выбор шага слотов"""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=f"{'✅ ' if value == current else ''}{value} мин",
                    callback_data=f"gran:{value}",
                )
                for value in ALLOWED_SLOT_GRANULARITIES
            ]
        ]
    )


def blocked_periods_keyboard(periods: Sequence[BlockedPeriod]) -> InlineKeyboardMarkup:
    """Список блокировок с кнопками снятия"""
    buttons = [
        [
            InlineKeyboardButton(
                text=(
                    f"🔓 {period.start_date.strftime('%d.%m')}–{period.end_date.strftime('%d.%m')}"
                    + (f" ({period.reason})" if period.reason else "")
                ),
                callback_data=f"unblock:{period.id}",
            )
        ]
        for period in periods
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons)
