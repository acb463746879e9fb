"""Обработчики панели специалиста"""

import logging
from datetime import date, datetime
from typing import Optional

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from config import DAY_NAMES_SHORT
from database.models import (
    AvailabilityRule,
    Break,
    BLOCKING_STATUSES,
    Professional,
    ReservationStatus,
    Service,
)
from database.repositories.availability_repository import AvailabilityRepository
from database.repositories.professional_repository import ProfessionalRepository
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.service_repository import ServiceRepository
from database.repositories.user_repository import UserRepository
from handlers.errors import describe_error
from keyboards.pro_keyboards import (
    agenda_navigation_keyboard,
    blocked_periods_keyboard,
    granularity_keyboard,
    reservation_actions_keyboard,
)
from keyboards.user_keyboards import STATUS_ICONS
from services.analytics_service import AnalyticsService
from services.booking_service import BookingService
from services.errors import BookingError
from utils.datetime_utils import day_bounds, localize_datetime, now_local
from utils.helpers import format_date, format_minutes, format_price, parse_date, parse_hhmm
from utils.states import ProStates

router = Router()

HOURS_USAGE = (
    "Использование:\n"
    "/hours <день 0-6> <ЧЧ:ММ-ЧЧ:ММ> [перерыв ЧЧ:ММ-ЧЧ:ММ ...]\n"
    "/hours <день 0-6> off\n\n"
    "0 = воскресенье, 6 = суббота"
)


async def _get_professional(user_id: int, message: Message) -> Optional[Professional]:
    professional = await ProfessionalRepository.get_by_user_id(user_id)
    if not professional:
        await message.answer("⛔ Сначала создайте профиль специалиста: /pro_register")
    return professional


def _parse_range(value: str) -> tuple[int, int]:
    start, end = value.split("-", 1)
    return parse_hhmm(start), parse_hhmm(end)


# === РЕГИСТРАЦИЯ ===


@router.message(Command("pro_register"))
async def pro_register(message: Message, state: FSMContext):
    """Создание профиля специалиста"""
    await UserRepository.register_user(message.from_user.id, message.from_user.username)
    if await ProfessionalRepository.get_by_user_id(message.from_user.id):
        await message.answer("✅ Профиль уже создан. Расписание: /agenda")
        return

    await state.set_state(ProStates.awaiting_display_name)
    await message.answer("👤 Как вас представить клиентам?")


@router.message(ProStates.awaiting_display_name)
async def pro_register_name(message: Message, state: FSMContext):
    await state.update_data(display_name=message.text.strip())
    await state.set_state(ProStates.awaiting_hourly_rate)
    await message.answer("💰 Почасовая ставка (число):")


@router.message(ProStates.awaiting_hourly_rate)
async def pro_register_rate(message: Message, state: FSMContext):
    try:
        hourly_rate = float(message.text.replace(",", "."))
    except ValueError:
        await message.answer("❌ Введите число, например 150")
        return

    data = await state.get_data()
    try:
        professional = await ProfessionalRepository.create(
            message.from_user.id, data["display_name"], hourly_rate
        )
    except BookingError as e:
        await message.answer(describe_error(e))
        return

    await state.clear()
    await message.answer(
        f"🎉 Профиль «{professional.display_name}» создан!\n\n"
        "Расписание по умолчанию: Вс–Чт 09:00–18:00\n\n"
        "⚙️ Настройка:\n"
        "/hours — рабочие часы\n"
        "/block — отпуск\n"
        "/granularity — шаг слотов\n"
        "/service_add — услуги\n"
        "/agenda — записи на день"
    )


# === РАСПИСАНИЕ ===


def _format_rules(rules) -> str:
    if not rules:
        return "📆 Расписание по умолчанию: Вс–Чт 09:00–18:00"
    lines = ["📆 Расписание:"]
    for rule in rules:
        if not rule.is_available:
            lines.append(f"{DAY_NAMES_SHORT[rule.day_of_week]}: выходной")
            continue
        line = (
            f"{DAY_NAMES_SHORT[rule.day_of_week]}: "
            f"{format_minutes(rule.start_time)}–{format_minutes(rule.end_time)}"
        )
        if rule.breaks:
            line += " (перерыв " + ", ".join(
                f"{format_minutes(b.start)}–{format_minutes(b.end)}" for b in rule.breaks
            ) + ")"
        lines.append(line)
    return "\n".join(lines)


@router.message(Command("hours"))
async def set_hours(message: Message, command: CommandObject):
    """Рабочие часы на день недели"""
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return

    args = (command.args or "").split()
    try:
        if len(args) < 2:
            raise ValueError("not enough arguments")
        dow = int(args[0])
        if args[1].lower() == "off":
            rule = AvailabilityRule(dow, 0, 1, is_available=False)
        else:
            start, end = _parse_range(args[1])
            breaks = tuple(Break(*_parse_range(value)) for value in args[2:])
            rule = AvailabilityRule(dow, start, end, breaks=breaks)
    except ValueError:
        await message.answer(HOURS_USAGE)
        return
    except BookingError as e:
        await message.answer(f"{describe_error(e)}\n\n{HOURS_USAGE}")
        return

    await AvailabilityRepository.upsert_rule(professional.id, rule)
    rules = await AvailabilityRepository.get_rules(professional.id)
    await message.answer(f"✅ {DAY_NAMES_SHORT[dow]}: сохранено\n\n{_format_rules(rules)}")


@router.message(Command("block"))
async def block_period(message: Message, command: CommandObject):
    """/block <ГГГГ-ММ-ДД> [ГГГГ-ММ-ДД] [причина]"""
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return

    args = (command.args or "").split(maxsplit=2)
    try:
        start_date = parse_date(args[0])
        end_date = start_date
        reason = None
        if len(args) > 1:
            try:
                end_date = parse_date(args[1])
                reason = args[2] if len(args) > 2 else None
            except ValueError:
                reason = " ".join(args[1:])
    except (ValueError, IndexError):
        await message.answer("Использование: /block <ГГГГ-ММ-ДД> [ГГГГ-ММ-ДД] [причина]")
        return

    try:
        period = await AvailabilityRepository.create_blocked_period(
            professional.id, start_date, end_date, reason
        )
    except BookingError as e:
        await message.answer(f"{describe_error(e)}: {e}")
        return

    await message.answer(
        f"🔒 Заблокировано: {format_date(period.start_date)} – {format_date(period.end_date)}"
    )


@router.message(Command("unblock"))
async def list_blocked(message: Message):
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return

    periods = await AvailabilityRepository.get_blocked_periods(professional.id)
    if not periods:
        await message.answer("🔓 Нет заблокированных периодов")
        return
    await message.answer(
        "Выберите период для разблокировки:", reply_markup=blocked_periods_keyboard(periods)
    )


@router.callback_query(F.data.startswith("unblock:"))
async def unblock_period(callback: CallbackQuery):
    professional = await ProfessionalRepository.get_by_user_id(callback.from_user.id)
    if not professional:
        await callback.answer("⛔ Недостаточно прав", show_alert=True)
        return

    period_id = int(callback.data.split(":")[1])
    try:
        await AvailabilityRepository.delete_blocked_period(period_id, professional.id)
    except BookingError as e:
        await callback.answer(describe_error(e), show_alert=True)
        return

    await callback.message.edit_text("✅ Период разблокирован")
    await callback.answer()


@router.message(Command("granularity"))
async def show_granularity(message: Message):
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return
    await message.answer(
        "⏱ Шаг между началами слотов:",
        reply_markup=granularity_keyboard(professional.slot_granularity),
    )


@router.callback_query(F.data.startswith("gran:"))
async def set_granularity(callback: CallbackQuery):
    professional = await ProfessionalRepository.get_by_user_id(callback.from_user.id)
    if not professional:
        await callback.answer("⛔ Недостаточно прав", show_alert=True)
        return

    value = int(callback.data.split(":")[1])
    try:
        await ProfessionalRepository.update_granularity(professional.id, value)
    except BookingError as e:
        await callback.answer(describe_error(e), show_alert=True)
        return
    await callback.message.edit_reply_markup(reply_markup=granularity_keyboard(value))
    await callback.answer(f"✅ Шаг: {value} мин")


# === УСЛУГИ ===


@router.message(Command("service_add"))
async def add_service(message: Message, command: CommandObject):
    """/service_add <минуты> <цена> <название>"""
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return

    args = (command.args or "").split(maxsplit=2)
    try:
        duration, price, name = int(args[0]), float(args[1]), args[2]
    except (ValueError, IndexError):
        await message.answer("Использование: /service_add <минуты> <цена> <название>")
        return

    try:
        await ServiceRepository.create_service(
            Service(id=None, professional_id=professional.id, name=name,
                    duration_minutes=duration, price=price)
        )
    except BookingError as e:
        await message.answer(f"{describe_error(e)}: {e}")
        return
    await message.answer(f"✅ Услуга «{name}» добавлена")


# === ЗАПИСИ ===


async def _send_agenda(message: Message, professional: Professional, day: date):
    day_start, day_end = day_bounds(day)
    reservations = await ReservationRepository.get_for_professional_between(
        professional.id, day_start, day_end
    )

    header = f"📋 {format_date(day)}\n\n"
    if not reservations:
        header += "Записей нет"
    await message.answer(header.strip(), reply_markup=agenda_navigation_keyboard(day))

    for reservation in reservations:
        markup = (
            reservation_actions_keyboard(reservation)
            if reservation.status in BLOCKING_STATUSES
            and reservation.status != ReservationStatus.COMPLETED
            else None
        )
        await message.answer(
            f"{STATUS_ICONS[reservation.status]} #{reservation.id} "
            f"{reservation.start_at.strftime('%H:%M')}–{reservation.end_at.strftime('%H:%M')} "
            f"👤 {reservation.client_id} 💰 {format_price(reservation.total_price)}",
            reply_markup=markup,
        )


@router.message(Command("agenda"))
async def agenda(message: Message, command: CommandObject):
    """Записи специалиста на день"""
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return

    try:
        day = parse_date(command.args) if command.args else now_local().date()
    except ValueError:
        await message.answer("Использование: /agenda [ГГГГ-ММ-ДД]")
        return
    await _send_agenda(message, professional, day)


@router.callback_query(F.data.startswith("agenda:"))
async def agenda_nav(callback: CallbackQuery):
    professional = await ProfessionalRepository.get_by_user_id(callback.from_user.id)
    if not professional:
        await callback.answer("⛔ Недостаточно прав", show_alert=True)
        return
    await callback.answer()
    await _send_agenda(callback.message, professional, date.fromisoformat(callback.data.split(":")[1]))


@router.callback_query(F.data == "pro_week")
async def week_overview(callback: CallbackQuery, booking_service: BookingService):
    """Свободные слоты на 7 дней"""
    professional = await ProfessionalRepository.get_by_user_id(callback.from_user.id)
    if not professional:
        await callback.answer("⛔ Недостаточно прав", show_alert=True)
        return

    overview = await booking_service.get_day_overview(professional.id)
    text = "📊 Свободные слоты на неделю:\n\n" + "\n".join(
        f"{format_date(day)}: {'🔴' if free == 0 else '🟢'} {free}"
        for day, free in overview.items()
    )
    await callback.message.answer(text)
    await callback.answer()


@router.callback_query(F.data.startswith("pro_act:"))
async def reservation_action(
    callback: CallbackQuery, state: FSMContext, booking_service: BookingService
):
    """Подтвердить / отклонить / завершить / отменить запись"""
    _, reservation_id, status = callback.data.split(":")
    reservation_id = int(reservation_id)
    new_status = ReservationStatus(status)

    if new_status == ReservationStatus.REJECTED:
        await state.set_state(ProStates.awaiting_reject_reason)
        await state.update_data(reject_reservation_id=reservation_id)
        await callback.message.answer("✍️ Укажите причину отказа (или «-»):")
        await callback.answer()
        return

    try:
        reservation = await booking_service.transition_reservation(
            reservation_id, new_status, callback.from_user.id
        )
    except BookingError as e:
        logging.info(f"Action {status} on reservation {reservation_id} refused: {e}")
        await callback.answer(describe_error(e), show_alert=True)
        return

    await callback.message.edit_text(
        f"{STATUS_ICONS[reservation.status]} #{reservation.id} "
        f"{reservation.start_at.strftime('%d.%m %H:%M')} — {reservation.status.value}"
    )
    await callback.answer()


@router.message(ProStates.awaiting_reject_reason)
async def reject_with_reason(message: Message, state: FSMContext, booking_service: BookingService):
    data = await state.get_data()
    await state.clear()
    reason = None if message.text.strip() == "-" else message.text.strip()

    try:
        await booking_service.transition_reservation(
            data["reject_reservation_id"], ReservationStatus.REJECTED, message.from_user.id, reason
        )
    except BookingError as e:
        await message.answer(describe_error(e))
        return
    await message.answer("❌ Запись отклонена, клиент уведомлён")


@router.message(Command("book"))
async def manual_booking(message: Message, command: CommandObject, booking_service: BookingService):
    """/book <id клиента> <ГГГГ-ММ-ДД> <ЧЧ:ММ> [id услуги]"""
    args = (command.args or "").split()
    try:
        client_id = int(args[0])
        requested_start = localize_datetime(
            datetime.strptime(f"{args[1]} {args[2]}", "%Y-%m-%d %H:%M")
        )
        service_id = int(args[3]) if len(args) > 3 else None
    except (ValueError, IndexError):
        await message.answer("Использование: /book <id клиента> <ГГГГ-ММ-ДД> <ЧЧ:ММ> [id услуги]")
        return

    try:
        reservation = await booking_service.create_manual_reservation(
            message.from_user.id, client_id, requested_start, service_id
        )
    except BookingError as e:
        await message.answer(f"{describe_error(e)}: {e}")
        return

    await message.answer(
        f"✅ Запись #{reservation.id} создана и подтверждена\n"
        f"📅 {format_date(reservation.start_at)} 🕒 {reservation.start_at.strftime('%H:%M')}"
    )


@router.message(Command("stats"))
async def stats(message: Message):
    """Статистика специалиста"""
    professional = await _get_professional(message.from_user.id, message)
    if not professional:
        return

    pro_stats = await AnalyticsService.get_dashboard_stats(professional.id)
    top_clients = await AnalyticsService.get_top_clients(professional.id)
    recommendations = await AnalyticsService.get_recommendations(professional.id)

    text = "📊 СТАТИСТИКА\n\n" + "\n".join(
        f"{STATUS_ICONS[status]} {status.value}: {count}"
        for status, count in sorted(pro_stats.status_counts.items(), key=lambda item: item[0].value)
    )
    text += (
        f"\n\n💰 Выручка: {format_price(pro_stats.revenue)}\n"
        f"⭐ Рейтинг: {pro_stats.avg_rating:.1f} ({pro_stats.reviews_count} отзывов)"
    )
    if top_clients:
        text += "\n\n👥 Постоянные клиенты:\n" + "\n".join(
            f"{i}. {name}: {total}" for i, (name, total) in enumerate(top_clients, 1)
        )
    for rec in recommendations:
        text += f"\n\n{rec['icon']} {rec['title']}\n{rec['text']}"
    await message.answer(text)
