"""Обработчики пользовательских команд"""

import logging

from aiogram import F, Router
from aiogram.filters import CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import REMINDER_HOURS_BEFORE
from database.models import ReservationStatus
from database.queries import Database
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.review_repository import ReviewRepository
from database.repositories.user_repository import UserRepository
from handlers.errors import describe_error
from keyboards.user_keyboards import (
    MAIN_MENU,
    STATUS_ICONS,
    create_cancel_confirmation_keyboard,
    my_reservations_keyboard,
)
from services.booking_service import BookingService
from services.errors import BookingError
from utils.helpers import format_date, format_price

router = Router()


@router.message(CommandStart())
async def start_cmd(message: Message, state: FSMContext):
    """Команда /start: регистрация клиента"""
    await state.clear()
    user_id = message.from_user.id
    is_new = await UserRepository.register_user(user_id, message.from_user.username)

    if is_new:
        await Database.log_event(user_id, "user_registered")
        await message.answer(
            "👋 Добро пожаловать в AniReserve!\n\n"
            "🎯 Записаться к специалисту — всего несколько кликов\n\n"
            "✨ ЧТО Я УМЕЮ:\n\n"
            "📅 Показываю только свободное время\n"
            f"⏰ Напоминаю о записи за {REMINDER_HOURS_BEFORE}ч\n"
            "⭐ Принимаю отзывы после встречи\n\n"
            "Специалист? Создайте профиль: /pro_register",
            reply_markup=MAIN_MENU,
        )
    else:
        await message.answer("С возвращением! 👋\n\nВыберите действие:", reply_markup=MAIN_MENU)


@router.message(F.text == "ℹ️ О сервисе")
async def about_service(message: Message):
    """Информация о сервисе"""
    await message.answer(
        "ℹ️ О СЕРВИСЕ\n\n"
        "1️⃣ Выберите специалиста и услугу\n"
        "2️⃣ Выберите дату в календаре\n"
        "   🟢 = много мест\n"
        "   🟡 = мало мест\n"
        "   🔴 = всё занято\n"
        "3️⃣ Выберите время и подтвердите\n\n"
        "⏳ Запись ждёт подтверждения специалиста\n"
        f"🔔 Напоминание за {REMINDER_HOURS_BEFORE}ч до встречи",
        reply_markup=MAIN_MENU,
    )


@router.message(F.text == "📋 Мои записи")
async def my_reservations(message: Message):
    """Список предстоящих записей клиента"""
    reservations = await ReservationRepository.get_for_client(
        message.from_user.id,
        statuses=[ReservationStatus.PENDING, ReservationStatus.CONFIRMED],
        upcoming_only=True,
    )

    if not reservations:
        await message.answer("📭 У вас нет активных записей", reply_markup=MAIN_MENU)
        return

    text = "📋 ВАШИ АКТИВНЫЕ ЗАПИСИ:\n\n"
    for i, reservation in enumerate(reservations, 1):
        text += (
            f"{i}. {STATUS_ICONS[reservation.status]} {format_date(reservation.start_at)} "
            f"🕒 {reservation.start_at.strftime('%H:%M')} — {format_price(reservation.total_price)}\n"
        )
    text += "\nНажмите на запись, чтобы отменить её."

    await message.answer(text, reply_markup=my_reservations_keyboard(reservations))


@router.callback_query(F.data.startswith("cancel_res:"))
async def cancel_request(callback: CallbackQuery):
    """Запрос подтверждения отмены"""
    reservation_id = int(callback.data.split(":")[1])
    await callback.message.edit_text(
        "❓ Отменить запись?", reply_markup=create_cancel_confirmation_keyboard(reservation_id)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("cancel_confirm:"))
async def cancel_confirm(callback: CallbackQuery, booking_service: BookingService):
    """Отмена записи клиентом"""
    reservation_id = int(callback.data.split(":")[1])
    try:
        await booking_service.transition_reservation(
            reservation_id, ReservationStatus.CANCELLED, callback.from_user.id
        )
    except BookingError as e:
        logging.info(f"Cancel of reservation {reservation_id} refused: {e}")
        await callback.answer(describe_error(e), show_alert=True)
        return

    await callback.message.edit_text("✅ Запись отменена")
    await callback.answer()


@router.callback_query(F.data == "cancel_decline")
async def cancel_decline(callback: CallbackQuery):
    await callback.message.edit_text("👌 Запись сохранена")
    await callback.answer()


@router.callback_query(F.data.startswith("review:"))
async def leave_review(callback: CallbackQuery):
    """Оценка завершённой записи"""
    try:
        _, reservation_id, rating = callback.data.split(":")
        reservation_id, rating = int(reservation_id), int(rating)
    except ValueError:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        return

    try:
        await ReviewRepository.add_review(reservation_id, callback.from_user.id, rating)
    except BookingError as e:
        await callback.answer(describe_error(e), show_alert=True)
        return

    await Database.log_event(callback.from_user.id, "review_left", f"{reservation_id}:{rating}")
    await callback.message.edit_text(f"🙏 Спасибо за отзыв! {'⭐' * rating}")
    await callback.answer()


@router.callback_query(F.data == "ignore")
async def ignore_callback(callback: CallbackQuery):
    """Игнорирование callback"""
    await callback.answer()
