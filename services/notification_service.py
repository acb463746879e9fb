"""Сервис уведомлений"""

import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramNetworkError, TelegramRetryAfter

from config import NOTIFY_MAX_ATTEMPTS, NOTIFY_RETRY_DELAY
from database.models import Reservation
from keyboards.pro_keyboards import reservation_actions_keyboard
from keyboards.user_keyboards import review_keyboard
from services.reservation_lifecycle import NotificationEvent
from utils.helpers import format_date, format_price
from utils.retry import async_retry


def _when(reservation: Reservation) -> str:
    return (
        f"📅 {format_date(reservation.start_at)}\n"
        f"🕒 {reservation.start_at.strftime('%H:%M')}–{reservation.end_at.strftime('%H:%M')}"
    )


def render_notification(
    event: NotificationEvent, reservation: Reservation, reason: Optional[str] = None
) -> str:
    """Текст уведомления для события"""
    when = _when(reservation)
    if event == NotificationEvent.CREATED:
        return (
            f"🔔 Новая запись #{reservation.id}\n\n"
            f"{when}\n"
            f"💰 {format_price(reservation.total_price)}\n\n"
            "Подтвердите или отклоните запись:"
        )
    if event == NotificationEvent.CONFIRMED:
        return f"✅ Запись #{reservation.id} подтверждена!\n\n{when}"
    if event == NotificationEvent.REJECTED:
        text = f"❌ Запись #{reservation.id} отклонена\n\n{when}"
        if reason:
            text += f"\n\nПричина: {reason}"
        return text
    if event == NotificationEvent.CANCELLED:
        text = f"🚫 Запись #{reservation.id} отменена\n\n{when}"
        if reason:
            text += f"\n\nПричина: {reason}"
        return text
    if event == NotificationEvent.COMPLETED:
        return (
            f"🎉 Запись #{reservation.id} завершена\n\n"
            "💬 Как прошла встреча?\n\nОцените качество услуги:"
        )
    if event == NotificationEvent.REMINDER:
        return (
            "⏰ НАПОМИНАНИЕ!\n\n"
            "У вас запись:\n"
            f"{when}\n\n"
            "Если нужно отменить → '📋 Мои записи'"
        )
    raise ValueError(f"Unknown notification event: {event}")


class NotificationService:
    """Сервис для отправки уведомлений

    Отправка "выстрелил и забыл": ошибки Telegram логируются и
    никогда не пробрасываются в бизнес-операции.
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    @async_retry(
        max_attempts=NOTIFY_MAX_ATTEMPTS,
        delay=NOTIFY_RETRY_DELAY,
        exceptions=(TelegramNetworkError, TelegramRetryAfter),
    )
    async def _send(self, chat_id: int, text: str, reply_markup=None):
        await self.bot.send_message(chat_id, text, reply_markup=reply_markup)

    async def notify(
        self,
        event: NotificationEvent,
        reservation: Reservation,
        recipient_id: int,
        reason: Optional[str] = None,
    ) -> bool:
        """Отправить уведомление о событии записи

        Returns:
            True, если сообщение ушло
        """
        reply_markup = None
        if event == NotificationEvent.CREATED:
            reply_markup = reservation_actions_keyboard(reservation)
        elif event == NotificationEvent.COMPLETED:
            reply_markup = review_keyboard(reservation.id)

        try:
            text = render_notification(event, reservation, reason)
            await self._send(recipient_id, text, reply_markup=reply_markup)
            return True
        except Exception as e:
            logging.error(
                f"Failed to notify {recipient_id} about {event.value} "
                f"of reservation {reservation.id}: {e}"
            )
            return False
