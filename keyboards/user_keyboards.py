"""Клавиатуры для клиентов"""

import calendar
from datetime import date, datetime
from typing import Dict, List, Sequence

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from config import CALENDAR_MAX_MONTHS_AHEAD, DAY_NAMES_SHORT, MONTH_NAMES
from database.models import Professional, Reservation, ReservationStatus
from utils.datetime_utils import now_local
from utils.helpers import format_date, format_price

# Главное меню
MAIN_MENU = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="📅 Записаться")],
        [KeyboardButton(text="📋 Мои записи"), KeyboardButton(text="ℹ️ О сервисе")],
    ],
    resize_keyboard=True,
    one_time_keyboard=False,
)

STATUS_ICONS = {
    ReservationStatus.PENDING: "⏳",
    ReservationStatus.CONFIRMED: "✅",
    ReservationStatus.COMPLETED: "🏁",
    ReservationStatus.CANCELLED: "🚫",
    ReservationStatus.REJECTED: "❌",
}


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def professionals_keyboard(professionals: Sequence[Professional]) -> InlineKeyboardMarkup:
    """Выбор специалиста"""
    buttons = [
        [InlineKeyboardButton(text=f"👤 {pro.display_name}", callback_data=f"pro:{pro.id}")]
        for pro in professionals
    ]
    buttons.append([InlineKeyboardButton(text="❌ Отмена", callback_data="cancel_booking_flow")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def create_month_calendar(
    year: int, month: int, free_slots: Dict[date, int]
) -> InlineKeyboardMarkup:
    """Календарь с навигацией по месяцам (неделя начинается с воскресенья)

    Args:
        year, month: Отображаемый месяц
        free_slots: Количество свободных слотов по датам; дни без данных недоступны
    """
    keyboard = []
    today = now_local().date()

    prev_year, prev_month = _shift_month(year, month, -1)
    next_year, next_month = _shift_month(year, month, 1)
    max_year, max_month = _shift_month(today.year, today.month, CALENDAR_MAX_MONTHS_AHEAD)

    # Не позволяем уйти в прошлое и дальше N месяцев вперёд
    can_go_prev = (prev_year, prev_month) >= (today.year, today.month)
    can_go_next = (next_year, next_month) <= (max_year, max_month)

    prev_button = (
        InlineKeyboardButton(text="◀️", callback_data=f"cal:{prev_year}-{prev_month:02d}")
        if can_go_prev
        else InlineKeyboardButton(text=" ", callback_data="ignore")
    )
    next_button = (
        InlineKeyboardButton(text="▶️", callback_data=f"cal:{next_year}-{next_month:02d}")
        if can_go_next
        else InlineKeyboardButton(text=" ", callback_data="ignore")
    )

    keyboard.append(
        [
            prev_button,
            InlineKeyboardButton(text=f"{MONTH_NAMES[month-1]} {year}", callback_data="ignore"),
            next_button,
        ]
    )

    # Дни недели
    keyboard.append(
        [InlineKeyboardButton(text=day, callback_data="ignore") for day in DAY_NAMES_SHORT]
    )

    for week in calendar.Calendar(firstweekday=6).monthdayscalendar(year, month):
        row = []
        for day in week:
            if day == 0:
                row.append(InlineKeyboardButton(text=" ", callback_data="ignore"))
                continue

            current = date(year, month, day)
            free = free_slots.get(current, 0)
            if current < today:
                row.append(InlineKeyboardButton(text="⚫", callback_data="ignore"))
            elif free == 0:
                row.append(InlineKeyboardButton(text=f"{day}🔴", callback_data="ignore"))
            else:
                status = "🟡" if free <= 3 else "🟢"
                row.append(
                    InlineKeyboardButton(
                        text=f"{day}{status}", callback_data=f"day:{current.isoformat()}"
                    )
                )
        keyboard.append(row)

    keyboard.append(
        [InlineKeyboardButton(text="❌ Отмена", callback_data="cancel_booking_flow")]
    )
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_time_slots(target_date: date, slots: List[datetime]) -> tuple[str, InlineKeyboardMarkup]:
    """Текст и клавиатура свободных слотов дня"""
    keyboard = []

    if not slots:
        text = (
            "❌ ВСЕ СЛОТЫ ЗАНЯТЫ\n\n"
            f"📅 {format_date(target_date)}\n\n"
            "Попробуйте выбрать другую дату."
        )
    else:
        for slot in slots:
            if not keyboard or len(keyboard[-1]) == 3:
                keyboard.append([])
            time_str = slot.strftime("%H:%M")
            keyboard[-1].append(
                InlineKeyboardButton(
                    text=time_str, callback_data=f"time:{target_date.isoformat()}:{time_str}"
                )
            )

        text = (
            "📍 Выберите время\n\n"
            f"📅 {format_date(target_date)}\n"
            f"🟢 Свободно: {len(slots)}\n"
        )
        if len(slots) <= 3:
            text += "⚠️ Мало мест — записывайтесь скорее!\n"

    keyboard.append(
        [InlineKeyboardButton(text="🔙 К календарю", callback_data="back_calendar")]
    )
    return text, InlineKeyboardMarkup(inline_keyboard=keyboard)


def create_confirmation_keyboard(date_str: str, time_str: str) -> InlineKeyboardMarkup:
    """Клавиатура подтверждения записи"""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="✅ Подтвердить запись",
                    callback_data=f"confirm:{date_str}:{time_str}",
                )
            ],
            [InlineKeyboardButton(text="📅 Изменить дату", callback_data="back_calendar")],
            [InlineKeyboardButton(text="◀️ Другое время", callback_data=f"day:{date_str}")],
            [InlineKeyboardButton(text="❌ Отменить запись", callback_data="cancel_booking_flow")],
        ]
    )


def my_reservations_keyboard(reservations: Sequence[Reservation]) -> InlineKeyboardMarkup:
    """Активные записи клиента с кнопками отмены"""
    buttons = []
    for reservation in reservations:
        if reservation.status in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
            buttons.append(
                [
                    InlineKeyboardButton(
                        text=(
                            f"❌ {reservation.start_at.strftime('%d.%m %H:%M')} "
                            f"({format_price(reservation.total_price)})"
                        ),
                        callback_data=f"cancel_res:{reservation.id}",
                    )
                ]
            )
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def create_cancel_confirmation_keyboard(reservation_id: int) -> InlineKeyboardMarkup:
    """Клавиатура подтверждения отмены"""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="✅ Да, отменить", callback_data=f"cancel_confirm:{reservation_id}"
                )
            ],
            [InlineKeyboardButton(text="❌ Нет, оставить", callback_data="cancel_decline")],
        ]
    )


def review_keyboard(reservation_id: int) -> InlineKeyboardMarkup:
    """Оценка завершённой записи"""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="⭐⭐⭐⭐⭐", callback_data=f"review:{reservation_id}:5"),
                InlineKeyboardButton(text="⭐⭐⭐⭐", callback_data=f"review:{reservation_id}:4"),
            ],
            [
                InlineKeyboardButton(text="⭐⭐⭐", callback_data=f"review:{reservation_id}:3"),
                InlineKeyboardButton(text="⭐⭐", callback_data=f"review:{reservation_id}:2"),
                InlineKeyboardButton(text="⭐", callback_data=f"review:{reservation_id}:1"),
            ],
        ]
    )
