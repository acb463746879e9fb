"""Обработчики бронирования"""

import calendar
import logging
from datetime import date, datetime

from aiogram import F, Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from database.queries import Database
from database.repositories.professional_repository import ProfessionalRepository
from database.repositories.service_repository import ServiceRepository
from database.repositories.user_repository import UserRepository
from handlers.errors import describe_error
from keyboards.service_keyboards import get_services_keyboard
from keyboards.user_keyboards import (
    MAIN_MENU,
    create_confirmation_keyboard,
    create_month_calendar,
    create_time_slots,
    professionals_keyboard,
)
from services.booking_service import BookingService
from services.errors import BookingError, SlotUnavailableError
from utils.datetime_utils import localize_datetime, now_local
from utils.helpers import format_date, format_price
from utils.states import BookingStates

router = Router()

SESSION_EXPIRED = "⌛ Сессия устарела, начните заново"

CALENDAR_HINT = (
    "📍 Выберите дату\n\n"
    "🟢 = много свободных слотов\n"
    "🟡 = мало слотов\n"
    "🔴 = всё занято\n"
    "⚫ = прошедшая дата"
)


async def _month_keyboard(booking_service: BookingService, state: FSMContext, year: int, month: int):
    """Календарь месяца с количеством свободных слотов по дням"""
    data = await state.get_data()
    today = now_local().date()
    first_day = max(date(year, month, 1), today)
    last_day = date(year, month, calendar.monthrange(year, month)[1])

    free_slots = {}
    if first_day <= last_day:
        free_slots = await booking_service.get_day_overview(
            data["professional_id"],
            first_day,
            (last_day - first_day).days + 1,
            service_id=data.get("service_id"),
        )
    return create_month_calendar(year, month, free_slots)


@router.message(F.text == "📅 Записаться")
async def booking_start(message: Message, state: FSMContext):
    """Начало процесса записи: выбор специалиста"""
    await state.clear()
    await UserRepository.register_user(message.from_user.id, message.from_user.username)
    await Database.log_event(message.from_user.id, "booking_started")

    professionals = await ProfessionalRepository.list_active()
    if not professionals:
        await message.answer("😞 Пока нет доступных специалистов", reply_markup=MAIN_MENU)
        return

    await state.set_state(BookingStates.choosing_professional)
    await message.answer(
        "👤 Выберите специалиста:", reply_markup=professionals_keyboard(professionals)
    )


@router.callback_query(F.data.startswith("pro:"))
async def select_professional(callback: CallbackQuery, state: FSMContext):
    """Выбор специалиста -> выбор услуги"""
    professional_id = int(callback.data.split(":")[1])
    await state.update_data(professional_id=professional_id)
    await state.set_state(BookingStates.choosing_service)

    services = await ServiceRepository.get_services(professional_id)
    await callback.message.edit_text(
        "🛠 Выберите услугу:", reply_markup=get_services_keyboard(services)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("service:select:"))
async def select_service(
    callback: CallbackQuery, state: FSMContext, booking_service: BookingService
):
    """Выбор услуги -> календарь"""
    service_id = int(callback.data.split(":")[2]) or None
    await state.update_data(service_id=service_id)
    await state.set_state(BookingStates.choosing_date)

    today = now_local()
    try:
        kb = await _month_keyboard(booking_service, state, today.year, today.month)
    except BookingError as e:
        await callback.answer(describe_error(e), show_alert=True)
        return
    await callback.message.edit_text(CALENDAR_HINT, reply_markup=kb)
    await callback.answer()


@router.callback_query(F.data.startswith("cal:"))
async def month_nav(callback: CallbackQuery, state: FSMContext, booking_service: BookingService):
    """Навигация по месяцам"""
    await callback.answer("⏳ Загружаю...")

    _, year_month = callback.data.split(":", 1)
    year, month = map(int, year_month.split("-"))
    if "professional_id" not in await state.get_data():
        await callback.message.edit_text(SESSION_EXPIRED)
        return

    try:
        kb = await _month_keyboard(booking_service, state, year, month)
    except BookingError as e:
        logging.info(f"Calendar unavailable for {callback.from_user.id}: {e}")
        await state.clear()
        await callback.message.edit_text(describe_error(e))
        return
    await callback.message.edit_text(CALENDAR_HINT, reply_markup=kb)


@router.callback_query(F.data.startswith("day:"))
async def select_day(callback: CallbackQuery, state: FSMContext, booking_service: BookingService):
    """Выбор дня -> свободные слоты"""
    try:
        target_date = date.fromisoformat(callback.data.split(":", 1)[1])
    except (ValueError, IndexError) as e:
        await callback.answer("❌ Ошибка: неверная дата", show_alert=True)
        logging.error(f"Invalid date in select_day: {callback.data}, error: {e}")
        await state.clear()
        return

    await callback.answer("⏳ Загружаю слоты...")
    data = await state.get_data()
    if "professional_id" not in data:
        await callback.message.edit_text(SESSION_EXPIRED)
        return
    try:
        slots = await booking_service.get_available_slots(
            data["professional_id"], target_date, service_id=data.get("service_id")
        )
    except BookingError as e:
        logging.info(f"Calendar unavailable for {callback.from_user.id}: {e}")
        await state.clear()
        await callback.message.edit_text(describe_error(e))
        return

    await state.set_state(BookingStates.choosing_time)
    text, kb = create_time_slots(target_date, slots)
    await callback.message.edit_text(text, reply_markup=kb)


@router.callback_query(F.data.startswith("time:"))
async def confirm_time(callback: CallbackQuery, state: FSMContext):
    """Подтверждение выбранного времени"""
    try:
        _, date_str, time_str = callback.data.split(":", 2)
        date_obj = date.fromisoformat(date_str)
        datetime.strptime(time_str, "%H:%M")
    except ValueError as e:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        logging.error(f"Invalid callback_data in confirm_time: {callback.data}, error: {e}")
        await state.clear()
        return

    await state.set_state(BookingStates.confirming)
    data = await state.get_data()
    service_line = ""
    if data.get("service_id"):
        service = await ServiceRepository.get_service_by_id(data["service_id"])
        if service:
            service_line = f"🛠 {service.name} — {format_price(service.price)}\n"

    await callback.message.edit_text(
        "📍 Подтверждение\n\n"
        f"📅 {format_date(date_obj)}\n"
        f"🕒 {time_str}\n"
        f"{service_line}\n"
        "✅ Подтвердить?",
        reply_markup=create_confirmation_keyboard(date_str, time_str),
    )
    await callback.answer()


@router.callback_query(F.data == "cancel_booking_flow")
async def cancel_booking_flow(callback: CallbackQuery, state: FSMContext):
    """Отмена процесса бронирования"""
    await state.clear()
    await callback.message.edit_text(
        "❌ Запись отменена\n\nВы вернулись в главное меню", reply_markup=None
    )
    await callback.answer("Действие отменено")


@router.callback_query(F.data.startswith("confirm:"))
async def book_time(callback: CallbackQuery, state: FSMContext, booking_service: BookingService):
    """Финальное бронирование"""
    try:
        _, date_str, time_str = callback.data.split(":", 2)
        requested_start = localize_datetime(
            datetime.strptime(f"{date_str} {time_str}", "%Y-%m-%d %H:%M")
        )
    except ValueError as e:
        await callback.answer("❌ Ошибка: неверные данные", show_alert=True)
        logging.error(f"Invalid callback_data in book_time: {callback.data}, error: {e}")
        return

    data = await state.get_data()
    if "professional_id" not in data:
        await callback.answer(SESSION_EXPIRED, show_alert=True)
        return

    try:
        reservation = await booking_service.create_reservation(
            data["professional_id"],
            callback.from_user.id,
            requested_start,
            service_id=data.get("service_id"),
        )
    except SlotUnavailableError as e:
        await callback.answer(describe_error(e), show_alert=True)
        slots = await booking_service.get_available_slots(
            data["professional_id"], requested_start.date(), service_id=data.get("service_id")
        )
        _, kb = create_time_slots(requested_start.date(), slots)
        await callback.message.edit_text(
            "❌ Не удалось записать\n\nВыберите другое время:", reply_markup=kb
        )
        return
    except BookingError as e:
        await callback.answer(describe_error(e), show_alert=True)
        return

    await state.clear()
    await callback.message.edit_text(
        "⏳ ЗАПИСЬ СОЗДАНА!\n\n"
        f"📅 {format_date(reservation.start_at)}\n"
        f"🕒 {reservation.start_at.strftime('%H:%M')}–{reservation.end_at.strftime('%H:%M')}\n"
        f"💰 {format_price(reservation.total_price)}\n\n"
        "Специалист подтвердит запись, мы пришлём уведомление.\n"
        "📋 'Мои записи' — посмотреть все"
    )
    await callback.answer("✅ Запись создана!")


@router.callback_query(F.data == "back_calendar")
async def back_calendar(callback: CallbackQuery, state: FSMContext, booking_service: BookingService):
    """Возврат к календарю"""
    await callback.answer("⏳ Загружаю календарь...")
    if "professional_id" not in await state.get_data():
        await callback.message.edit_text(SESSION_EXPIRED)
        return

    await state.set_state(BookingStates.choosing_date)
    today = now_local()
    try:
        kb = await _month_keyboard(booking_service, state, today.year, today.month)
    except BookingError as e:
        logging.info(f"Calendar unavailable for {callback.from_user.id}: {e}")
        await state.clear()
        await callback.message.edit_text(describe_error(e))
        return
    await callback.message.edit_text(CALENDAR_HINT, reply_markup=kb)
