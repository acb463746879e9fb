"""Сервис управления бронированием"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

import aiosqlite
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import (
    BOOKING_INSERT_RETRIES,
    DEFAULT_SERVICE_DURATION,
    REMINDER_HOURS_BEFORE,
    SLOTS_LOOKAHEAD_DAYS,
    TIMEZONE,
)
from database.models import BLOCKING_STATUSES, Professional, Reservation, ReservationStatus
from database.queries import Database
from database.repositories.availability_repository import AvailabilityRepository
from database.repositories.professional_repository import ProfessionalRepository
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.service_repository import ServiceRepository
from database.repositories.user_repository import UserRepository
from services.conflict_filter import filter_available
from services.errors import (
    AuthorizationError,
    BookingError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from services.notification_service import NotificationService
from services.reservation_lifecycle import (
    Actor,
    NotificationEvent,
    TransitionOutcome,
    apply_transition,
)
from services.slot_generator import generate_slots
from utils.datetime_utils import (
    combine_local,
    day_bounds,
    get_date_range,
    localize_datetime,
    now_local,
)


class BookingService:
    """Сервис для работы с бронированием

    Все проверки доступности и вставка записи выполняются в одной
    транзакции BEGIN IMMEDIATE; триггер в БД отбрасывает пересечения,
    пропущенные в обход сервиса.
    """

    def __init__(self, scheduler: AsyncIOScheduler, bot):
        self.scheduler = scheduler
        self.bot = bot
        self.notifications = NotificationService(bot)

    # === СЛОТЫ ===

    async def _resolve_offer(
        self, professional_id: int, service_id: Optional[int], db=None
    ) -> Tuple[Professional, int, float]:
        """Специалист, длительность и цена услуги

        Raises:
            NotFoundError: неизвестный/неактивный специалист или чужая/скрытая услуга
        """
        professional = await ProfessionalRepository.get_by_id(professional_id, db=db)
        if not professional or not professional.is_active:
            raise NotFoundError(f"Professional {professional_id} not found")

        if service_id is None:
            duration = DEFAULT_SERVICE_DURATION
            price = round(professional.hourly_rate * duration / 60, 2)
            return professional, duration, price

        service = await ServiceRepository.get_service_by_id(service_id, db=db)
        if not service or not service.is_active or service.professional_id != professional_id:
            raise NotFoundError(f"Service {service_id} not found")
        return professional, service.duration_minutes, service.price

    async def _offered_slots(
        self,
        db: aiosqlite.Connection,
        professional: Professional,
        target_date: date,
        duration: int,
        now: datetime,
    ) -> List[int]:
        """Свободные начала слотов на день (минуты суток)"""
        rules = await AvailabilityRepository.get_rules(professional.id, db=db)
        blocked = await AvailabilityRepository.get_blocked_periods(
            professional.id, target_date, target_date, db=db
        )
        candidates = generate_slots(
            rules,
            blocked,
            target_date,
            now,
            slot_granularity=professional.slot_granularity,
            service_duration=duration,
        )
        if not candidates:
            return []

        day_start, day_end = day_bounds(target_date)
        existing = await ReservationRepository.get_for_professional_between(
            professional.id, day_start, day_end, db=db, statuses=BLOCKING_STATUSES
        )
        return filter_available(
            candidates, target_date, duration, existing, professional_id=professional.id
        )

    async def get_available_slots(
        self,
        professional_id: int,
        target_date: date,
        service_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[datetime]:
        """Свободные слоты специалиста на дату

        Returns:
            Возрастающий список aware datetime начал слотов
        """
        now = now or now_local()
        async with Database.connect() as db:
            professional, duration, _ = await self._resolve_offer(professional_id, service_id, db=db)
            slots = await self._offered_slots(db, professional, target_date, duration, now)
        return [combine_local(target_date, minute) for minute in slots]

    async def get_day_overview(
        self,
        professional_id: int,
        start_date: Optional[date] = None,
        days: int = SLOTS_LOOKAHEAD_DAYS,
        service_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[date, int]:
        """Количество свободных слотов по дням (для раскраски календаря)"""
        now = now or now_local()
        start_date = start_date or now.astimezone(TIMEZONE).date()

        overview = {}
        async with Database.connect() as db:
            professional, duration, _ = await self._resolve_offer(professional_id, service_id, db=db)
            for day in get_date_range(start_date, days):
                slots = await self._offered_slots(db, professional, day, duration, now)
                overview[day] = len(slots)
        return overview

    # === СОЗДАНИЕ ЗАПИСИ ===

    async def create_reservation(
        self,
        professional_id: int,
        client_id: int,
        requested_start: datetime,
        service_id: Optional[int] = None,
        now: Optional[datetime] = None,
        *,
        notify: bool = True,
    ) -> Reservation:
        """Создание записи с атомарной проверкой слота

        Raises:
            ValidationError: начало в прошлом
            NotFoundError: неизвестный специалист, клиент или услуга
            SlotUnavailableError: слот не предлагается или занят параллельно
        """
        now = now or now_local()
        requested_start = localize_datetime(requested_start, TIMEZONE)
        if requested_start <= now:
            raise ValidationError("Requested start is in the past", requested_start=requested_start)

        attempts = BOOKING_INSERT_RETRIES + 1
        for attempt in range(1, attempts + 1):
            try:
                reservation = await self._create_in_transaction(
                    professional_id, client_id, requested_start, service_id, now
                )
                break
            except aiosqlite.IntegrityError as e:
                logging.warning(
                    f"Overlap rejected by database for professional {professional_id} "
                    f"at {requested_start} (attempt {attempt}/{attempts}): {e}"
                )
            except aiosqlite.OperationalError as e:
                # Только "database is locked": истёк busy timeout ожидания записи
                if "locked" not in str(e):
                    raise
                logging.warning(
                    f"Database busy while booking professional {professional_id} "
                    f"at {requested_start} (attempt {attempt}/{attempts}): {e}"
                )
        else:
            raise SlotUnavailableError(
                "Slot was taken concurrently", requested_start=requested_start
            )

        logging.info(
            f"Reservation {reservation.id} created: professional {professional_id}, "
            f"client {client_id}, {reservation.start_at.isoformat()}"
        )

        if notify:
            professional = await ProfessionalRepository.get_by_id(professional_id)
            await self.notifications.notify(
                NotificationEvent.CREATED, reservation, professional.user_id
            )
        await Database.log_event(
            client_id, "reservation_created", f"{reservation.id} {reservation.start_at.isoformat()}"
        )
        return reservation

    async def _create_in_transaction(
        self,
        professional_id: int,
        client_id: int,
        requested_start: datetime,
        service_id: Optional[int],
        now: datetime,
    ) -> Reservation:
        async with Database.connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                professional, duration, price = await self._resolve_offer(
                    professional_id, service_id, db=db
                )
                if not await UserRepository.exists(client_id, db=db):
                    raise NotFoundError(f"Client {client_id} not found")

                target_date = requested_start.date()
                offered = await self._offered_slots(db, professional, target_date, duration, now)
                if not any(combine_local(target_date, m) == requested_start for m in offered):
                    logging.info(
                        f"Slot {requested_start} not available for professional {professional_id}"
                    )
                    raise SlotUnavailableError(
                        "Requested start is not an available slot", requested_start=requested_start
                    )

                reservation = await ReservationRepository.insert(
                    Reservation(
                        id=None,
                        professional_id=professional_id,
                        client_id=client_id,
                        service_id=service_id,
                        start_at=requested_start,
                        end_at=requested_start + timedelta(minutes=duration),
                        total_price=price,
                        status=ReservationStatus.PENDING,
                    ),
                    db=db,
                )
                await db.commit()
                return reservation
            except Exception:
                await db.rollback()
                raise

    async def create_manual_reservation(
        self,
        professional_user_id: int,
        client_id: int,
        requested_start: datetime,
        service_id: Optional[int] = None,
    ) -> Reservation:
        """Запись клиента самим специалистом (сразу подтверждается)"""
        professional = await ProfessionalRepository.get_by_user_id(professional_user_id)
        if not professional:
            raise NotFoundError(f"User {professional_user_id} has no professional profile")

        reservation = await self.create_reservation(
            professional.id, client_id, requested_start, service_id, notify=False
        )
        return await self.transition_reservation(
            reservation.id, ReservationStatus.CONFIRMED, professional_user_id
        )

    # === СМЕНА СТАТУСА ===

    async def transition_reservation(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
        actor_user_id: int,
        reason: Optional[str] = None,
    ) -> Reservation:
        """Смена статуса записи от имени пользователя Telegram

        Raises:
            NotFoundError: записи нет
            AuthorizationError: пользователь не участник записи или не может выполнить переход
            InvalidTransitionError: переход запрещён или статус изменился параллельно
        """
        reservation = await ReservationRepository.get_by_id(reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")

        professional = await ProfessionalRepository.get_by_id(reservation.professional_id)
        if professional and professional.user_id == actor_user_id:
            actor = Actor.PROFESSIONAL
        elif reservation.client_id == actor_user_id:
            actor = Actor.CLIENT
        else:
            raise AuthorizationError(
                f"User {actor_user_id} is not a party of reservation {reservation_id}"
            )

        return await self._transition(reservation, professional, new_status, actor, reason)

    async def _transition(
        self,
        reservation: Reservation,
        professional: Professional,
        new_status: ReservationStatus,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Reservation:
        outcome = apply_transition(reservation, new_status, actor, reason)

        updated = await ReservationRepository.update_status(
            reservation.id,
            outcome.previous_status,
            outcome.reservation.status,
            rejection_reason=outcome.reservation.rejection_reason,
        )
        if not updated:
            raise InvalidTransitionError(
                f"Reservation {reservation.id} changed status concurrently",
                reservation_id=reservation.id,
            )

        logging.info(
            f"Reservation {reservation.id}: {outcome.previous_status.value} -> "
            f"{outcome.reservation.status.value} by {actor.value}"
        )
        await self._after_transition(outcome, professional, reason)
        return outcome.reservation

    async def _after_transition(
        self, outcome: TransitionOutcome, professional: Professional, reason: Optional[str]
    ):
        """Побочные эффекты перехода: задачи планировщика, уведомления, аналитика"""
        reservation = outcome.reservation

        if reservation.status == ReservationStatus.CONFIRMED:
            self._schedule_jobs(reservation)
        else:
            self._remove_jobs(reservation.id)

        recipient_id = (
            reservation.client_id if outcome.notify == Actor.CLIENT else professional.user_id
        )
        sent = await self.notifications.notify(outcome.event, reservation, recipient_id, reason)

        if outcome.enables_review and sent:
            await ReservationRepository.mark_review_requested(reservation.id)

        await Database.log_event(
            reservation.client_id,
            f"reservation_{reservation.status.value.lower()}",
            str(reservation.id),
        )

    # === ЗАДАЧИ ПЛАНИРОВЩИКА ===

    def _remove_job_safe(self, job_id: str):
        """Удаление задачи из scheduler, если она есть"""
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def _remove_jobs(self, reservation_id: int):
        self._remove_job_safe(f"reminder_{reservation_id}")
        self._remove_job_safe(f"complete_{reservation_id}")

    def _schedule_jobs(self, reservation: Reservation, now: Optional[datetime] = None):
        """Напоминание за REMINDER_HOURS_BEFORE часов и автозавершение в end_at"""
        now = now or now_local()

        reminder_time = reservation.start_at - timedelta(hours=REMINDER_HOURS_BEFORE)
        if not reservation.reminder_sent and reminder_time > now:
            self.scheduler.add_job(
                self._send_reminder,
                "date",
                run_date=reminder_time,
                args=[reservation.id],
                id=f"reminder_{reservation.id}",
                replace_existing=True,
            )

        self.scheduler.add_job(
            self._auto_complete,
            "date",
            run_date=reservation.end_at,
            args=[reservation.id],
            id=f"complete_{reservation.id}",
            replace_existing=True,
        )

    async def _send_reminder(self, reservation_id: int):
        """Отправка напоминания клиенту"""
        reservation = await ReservationRepository.get_by_id(reservation_id)
        if not reservation or reservation.status != ReservationStatus.CONFIRMED:
            return
        if not await ReservationRepository.mark_reminder_sent(reservation_id):
            return

        await self.notifications.notify(
            NotificationEvent.REMINDER, reservation, reservation.client_id
        )
        await Database.log_event(reservation.client_id, "reminder_sent", str(reservation_id))

    async def _auto_complete(self, reservation_id: int):
        """Завершение подтверждённой записи по окончании времени"""
        reservation = await ReservationRepository.get_by_id(reservation_id)
        if not reservation or reservation.status != ReservationStatus.CONFIRMED:
            return

        professional = await ProfessionalRepository.get_by_id(reservation.professional_id)
        try:
            await self._transition(
                reservation, professional, ReservationStatus.COMPLETED, Actor.SYSTEM
            )
        except BookingError as e:
            logging.warning(f"Auto-complete of reservation {reservation_id} skipped: {e}")

    async def restore_jobs(self) -> int:
        """Восстановить задачи после рестарта

        Returns:
            Количество записей, для которых задачи восстановлены
        """
        now = now_local()
        confirmed = await ReservationRepository.get_by_status([ReservationStatus.CONFIRMED])

        restored = 0
        for reservation in confirmed:
            if reservation.end_at <= now:
                await self._auto_complete(reservation.id)
                continue
            self._schedule_jobs(reservation, now)
            restored += 1

        logging.info(f"Restored jobs for {restored} reservations")
        return restored
