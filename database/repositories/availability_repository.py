"""Репозиторий расписания: недельные правила и заблокированные периоды"""

import json
import logging
from datetime import date, timedelta
from typing import List, Optional, Sequence

from database.base_repository import BaseRepository
from database.models import AvailabilityRule, BlockedPeriod, Break
from services.errors import AuthorizationError, NotFoundError, ValidationError
from utils.datetime_utils import combine_local, now_local, to_db
from utils.helpers import format_minutes, parse_hhmm


def _breaks_to_json(breaks: Sequence[Break]) -> str:
    return json.dumps(
        [{"start": format_minutes(b.start), "end": format_minutes(b.end)} for b in breaks]
    )


def _breaks_from_json(raw: Optional[str]) -> tuple:
    if not raw:
        return ()
    return tuple(
        Break(start=parse_hhmm(item["start"]), end=parse_hhmm(item["end"]))
        for item in json.loads(raw)
    )


def _row_to_rule(row) -> AvailabilityRule:
    return AvailabilityRule(
        day_of_week=row["day_of_week"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        is_available=bool(row["is_available"]),
        breaks=_breaks_from_json(row["breaks"]),
    )


def _row_to_period(row) -> BlockedPeriod:
    return BlockedPeriod(
        id=row["id"],
        professional_id=row["professional_id"],
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        reason=row["reason"],
    )


class AvailabilityRepository(BaseRepository):
    """Правила доступности и блокировки специалиста"""

    # === НЕДЕЛЬНЫЕ ПРАВИЛА ===

    @staticmethod
    async def get_rules(professional_id: int, db=None) -> List[AvailabilityRule]:
        rows = await AvailabilityRepository._execute_query(
            "SELECT * FROM availability_rules WHERE professional_id=? ORDER BY day_of_week",
            (professional_id,),
            fetch_all=True,
            db=db,
        )
        return [_row_to_rule(row) for row in rows or []]

    @staticmethod
    async def upsert_rule(professional_id: int, rule: AvailabilityRule):
        """Создать или заменить правило на день недели"""
        await AvailabilityRepository._execute_query(
            """INSERT INTO availability_rules
            (professional_id, day_of_week, is_available, start_time, end_time, breaks)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(professional_id, day_of_week) DO UPDATE SET
                is_available=excluded.is_available,
                start_time=excluded.start_time,
                end_time=excluded.end_time,
                breaks=excluded.breaks""",
            (professional_id, rule.day_of_week, rule.is_available,
             rule.start_time, rule.end_time, _breaks_to_json(rule.breaks)),
            commit=True,
        )
        logging.info(f"Availability rule for day {rule.day_of_week} saved (professional {professional_id})")

    @staticmethod
    async def replace_rules(professional_id: int, rules: Sequence[AvailabilityRule]):
        """Заменить всё недельное расписание одной транзакцией"""
        days = [rule.day_of_week for rule in rules]
        if len(days) != len(set(days)):
            raise ValidationError("Only one rule per day of week is allowed")

        async with AvailabilityRepository._connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                await db.execute(
                    "DELETE FROM availability_rules WHERE professional_id=?", (professional_id,)
                )
                await db.executemany(
                    """INSERT INTO availability_rules
                    (professional_id, day_of_week, is_available, start_time, end_time, breaks)
                    VALUES (?, ?, ?, ?, ?, ?)""",
                    [
                        (professional_id, r.day_of_week, r.is_available,
                         r.start_time, r.end_time, _breaks_to_json(r.breaks))
                        for r in rules
                    ],
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    # === ЗАБЛОКИРОВАННЫЕ ПЕРИОДЫ ===

    @staticmethod
    async def get_blocked_periods(
        professional_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        db=None,
    ) -> List[BlockedPeriod]:
        """Блокировки специалиста, опционально только пересекающие [start_date, end_date]"""
        query = "SELECT * FROM blocked_periods WHERE professional_id=?"
        params: tuple = (professional_id,)
        if start_date and end_date:
            query += " AND start_date <= ? AND end_date >= ?"
            params += (end_date.isoformat(), start_date.isoformat())
        query += " ORDER BY start_date"

        rows = await AvailabilityRepository._execute_query(query, params, fetch_all=True, db=db)
        return [_row_to_period(row) for row in rows or []]

    @staticmethod
    async def create_blocked_period(
        professional_id: int, start_date: date, end_date: date, reason: Optional[str] = None
    ) -> BlockedPeriod:
        """Заблокировать диапазон дат

        Raises:
            ValidationError: конец раньше начала, пересечение с другой блокировкой
                или активные записи внутри периода
        """
        period = BlockedPeriod(
            professional_id=professional_id,
            start_date=start_date,
            end_date=end_date,
            reason=(reason or "").strip()[:100] or None,
        )

        range_start = to_db(combine_local(start_date, 0))
        # Конец диапазона: начало следующего за end_date дня
        range_end = to_db(combine_local(end_date + timedelta(days=1), 0))

        async with AvailabilityRepository._connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                async with db.execute(
                    """SELECT 1 FROM blocked_periods
                    WHERE professional_id=? AND start_date <= ? AND end_date >= ?""",
                    (professional_id, end_date.isoformat(), start_date.isoformat()),
                ) as cursor:
                    if await cursor.fetchone():
                        raise ValidationError("Period overlaps an existing blocked period")

                async with db.execute(
                    """SELECT 1 FROM reservations
                    WHERE professional_id=? AND status IN ('PENDING', 'CONFIRMED')
                    AND start_at < ? AND end_at > ?""",
                    (professional_id, range_end, range_start),
                ) as cursor:
                    if await cursor.fetchone():
                        raise ValidationError("There are active reservations in this period")

                cursor = await db.execute(
                    """INSERT INTO blocked_periods
                    (professional_id, start_date, end_date, reason, created_at)
                    VALUES (?, ?, ?, ?, ?)""",
                    (professional_id, start_date.isoformat(), end_date.isoformat(),
                     period.reason, now_local().isoformat()),
                )
                period_id = cursor.lastrowid
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logging.info(
            f"Blocked period {period_id} {start_date}..{end_date} created (professional {professional_id})"
        )
        return BlockedPeriod(
            id=period_id,
            professional_id=professional_id,
            start_date=start_date,
            end_date=end_date,
            reason=period.reason,
        )

    @staticmethod
    async def delete_blocked_period(period_id: int, professional_id: int) -> bool:
        """Удалить блокировку (с проверкой владельца)"""
        row = await AvailabilityRepository._execute_query(
            "SELECT professional_id FROM blocked_periods WHERE id=?", (period_id,), fetch_one=True
        )
        if not row:
            raise NotFoundError(f"Blocked period {period_id} not found")
        if row["professional_id"] != professional_id:
            raise AuthorizationError("Blocked period belongs to another professional")

        changed = await AvailabilityRepository._execute_query(
            "DELETE FROM blocked_periods WHERE id=?", (period_id,), commit=True
        )
        logging.info(f"Blocked period {period_id} deleted")
        return changed > 0
