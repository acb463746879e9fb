"""Клавиатуры для выбора услуг"""

from typing import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from config import DEFAULT_SERVICE_DURATION
from database.models import Service
from utils.helpers import format_duration, format_price


def get_services_keyboard(services: Sequence[Service]) -> InlineKeyboardMarkup:
    """Клавиатура выбора услуги (0 = стандартный сеанс по почасовой ставке)"""
    buttons = []
    for service in services:
        # Эмодзи в зависимости от длительности
        if service.duration_minutes <= 60:
            emoji = "⚡"
        elif service.duration_minutes <= 90:
            emoji = "⏱"
        else:
            emoji = "🕐"

        button_text = (
            f"{emoji} {service.name} "
            f"({format_duration(service.duration_minutes)}, {format_price(service.price)})"
        )
        buttons.append(
            [InlineKeyboardButton(text=button_text, callback_data=f"service:select:{service.id}")]
        )

    buttons.append(
        [
            InlineKeyboardButton(
                text=f"🕐 Стандартный сеанс ({format_duration(DEFAULT_SERVICE_DURATION)})",
                callback_data="service:select:0",
            )
        ]
    )
    buttons.append([InlineKeyboardButton(text="« Назад", callback_data="cancel_booking_flow")])

    return InlineKeyboardMarkup(inline_keyboard=buttons)
