"""Репозиторий записей (reservations)"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from database.base_repository import BaseRepository
from database.models import Reservation, ReservationStatus
from utils.datetime_utils import from_db, now_local, to_db


def _row_to_reservation(row) -> Reservation:
    return Reservation(
        id=row["id"],
        professional_id=row["professional_id"],
        client_id=row["client_id"],
        service_id=row["service_id"],
        start_at=from_db(row["start_at"]),
        end_at=from_db(row["end_at"]),
        total_price=row["total_price"],
        status=ReservationStatus(row["status"]),
        rejection_reason=row["rejection_reason"],
        reminder_sent=bool(row["reminder_sent"]),
        review_requested=bool(row["review_requested"]),
        created_at=from_db(row["created_at"]),
        updated_at=from_db(row["updated_at"]),
    )


def _status_filter(statuses: Optional[Iterable[ReservationStatus]]) -> tuple[str, tuple]:
    if not statuses:
        return "", ()
    values = tuple(ReservationStatus(s).value for s in statuses)
    return f" AND status IN ({', '.join('?' * len(values))})", values


class ReservationRepository(BaseRepository):
    """Хранение записей; проверка пересечений живёт в BookingService и триггерах БД"""

    @staticmethod
    async def insert(reservation: Reservation, db=None) -> Reservation:
        """Вставить запись, возвращает копию с id

        Raises:
            aiosqlite.IntegrityError: пересечение с активной записью (триггер)
        """
        now = to_db(now_local())
        reservation_id = await ReservationRepository._insert(
            """INSERT INTO reservations
            (professional_id, client_id, service_id, start_at, end_at, total_price,
             status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                reservation.professional_id,
                reservation.client_id,
                reservation.service_id,
                to_db(reservation.start_at),
                to_db(reservation.end_at),
                reservation.total_price,
                reservation.status.value,
                now,
                now,
            ),
            db=db,
        )
        reservation.id = reservation_id
        reservation.created_at = reservation.updated_at = from_db(now)
        return reservation

    @staticmethod
    async def get_by_id(reservation_id: int, db=None) -> Optional[Reservation]:
        row = await ReservationRepository._execute_query(
            "SELECT * FROM reservations WHERE id=?", (reservation_id,), fetch_one=True, db=db
        )
        return _row_to_reservation(row) if row else None

    @staticmethod
    async def get_for_professional_between(
        professional_id: int,
        start: datetime,
        end: datetime,
        db=None,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> List[Reservation]:
        """Записи специалиста, пересекающие [start, end)"""
        status_sql, status_params = _status_filter(statuses)
        rows = await ReservationRepository._execute_query(
            "SELECT * FROM reservations WHERE professional_id=? AND start_at < ? AND end_at > ?"
            + status_sql
            + " ORDER BY start_at",
            (professional_id, to_db(end), to_db(start)) + status_params,
            fetch_all=True,
            db=db,
        )
        return [_row_to_reservation(row) for row in rows or []]

    @staticmethod
    async def get_for_client(
        client_id: int,
        statuses: Optional[Iterable[ReservationStatus]] = None,
        upcoming_only: bool = False,
    ) -> List[Reservation]:
        """Записи клиента по времени начала"""
        status_sql, status_params = _status_filter(statuses)
        query = "SELECT * FROM reservations WHERE client_id=?" + status_sql
        params = (client_id,) + status_params
        if upcoming_only:
            query += " AND start_at > ?"
            params += (to_db(now_local()),)
        query += " ORDER BY start_at"

        rows = await ReservationRepository._execute_query(query, params, fetch_all=True)
        return [_row_to_reservation(row) for row in rows or []]

    @staticmethod
    async def get_by_status(
        statuses: Iterable[ReservationStatus], after: Optional[datetime] = None
    ) -> List[Reservation]:
        """Все записи в заданных статусах (для восстановления задач планировщика)"""
        status_sql, status_params = _status_filter(statuses)
        query = "SELECT * FROM reservations WHERE 1=1" + status_sql
        params = status_params
        if after is not None:
            query += " AND end_at > ?"
            params += (to_db(after),)
        query += " ORDER BY start_at"

        rows = await ReservationRepository._execute_query(query, params, fetch_all=True)
        return [_row_to_reservation(row) for row in rows or []]

    @staticmethod
    async def update_status(
        reservation_id: int,
        expected_status: ReservationStatus,
        new_status: ReservationStatus,
        rejection_reason: Optional[str] = None,
        db=None,
    ) -> bool:
        """Сменить статус, только если запись всё ещё в expected_status

        Returns:
            False, если статус успел измениться параллельно
        """
        changed = await ReservationRepository._execute_query(
            """UPDATE reservations
            SET status=?, rejection_reason=COALESCE(?, rejection_reason), updated_at=?
            WHERE id=? AND status=?""",
            (
                ReservationStatus(new_status).value,
                rejection_reason,
                to_db(now_local()),
                reservation_id,
                ReservationStatus(expected_status).value,
            ),
            commit=True,
            db=db,
        )
        if changed:
            logging.info(f"Reservation {reservation_id}: {expected_status.value} -> {new_status.value}")
        return changed > 0

    @staticmethod
    async def mark_reminder_sent(reservation_id: int) -> bool:
        changed = await ReservationRepository._execute_query(
            "UPDATE reservations SET reminder_sent=1 WHERE id=? AND reminder_sent=0",
            (reservation_id,),
            commit=True,
        )
        return changed > 0

    @staticmethod
    async def mark_review_requested(reservation_id: int) -> bool:
        changed = await ReservationRepository._execute_query(
            "UPDATE reservations SET review_requested=1 WHERE id=? AND review_requested=0",
            (reservation_id,),
            commit=True,
        )
        return changed > 0

    @staticmethod
    async def count_by_status(professional_id: int) -> dict:
        """Количество записей специалиста по статусам"""
        rows = await ReservationRepository._execute_query(
            "SELECT status, COUNT(*) FROM reservations WHERE professional_id=? GROUP BY status",
            (professional_id,),
            fetch_all=True,
        )
        return {ReservationStatus(row[0]): row[1] for row in rows or []}
