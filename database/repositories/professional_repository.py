"""Репозиторий для профилей специалистов"""

import logging
from typing import List, Optional

import aiosqlite

from config import ALLOWED_SLOT_GRANULARITIES
from database.base_repository import BaseRepository
from database.models import Professional
from services.errors import ValidationError
from utils.datetime_utils import now_local


def _row_to_professional(row) -> Professional:
    return Professional(
        id=row["id"],
        user_id=row["user_id"],
        display_name=row["display_name"],
        hourly_rate=row["hourly_rate"],
        slot_granularity=row["slot_granularity"],
        is_active=bool(row["is_active"]),
    )


class ProfessionalRepository(BaseRepository):
    """Репозиторий специалистов"""

    @staticmethod
    async def create(
        user_id: int, display_name: str, hourly_rate: float, slot_granularity: int = 60
    ) -> Professional:
        """Создать профиль специалиста"""
        if hourly_rate < 0:
            raise ValidationError("Hourly rate must not be negative")
        if slot_granularity not in ALLOWED_SLOT_GRANULARITIES:
            raise ValidationError(f"Slot granularity must be one of {ALLOWED_SLOT_GRANULARITIES}")
        if not display_name.strip():
            raise ValidationError("Display name is required")

        try:
            pro_id = await ProfessionalRepository._insert(
                """INSERT INTO professionals
                (user_id, display_name, hourly_rate, slot_granularity, is_active, created_at)
                VALUES (?, ?, ?, ?, 1, ?)""",
                (user_id, display_name.strip(), hourly_rate, slot_granularity, now_local().isoformat()),
            )
        except aiosqlite.IntegrityError as e:
            logging.warning(f"Professional profile already exists for user {user_id}: {e}")
            raise ValidationError("Professional profile already exists", user_id=user_id) from None

        logging.info(f"Professional {pro_id} created for user {user_id}")
        return Professional(
            id=pro_id,
            user_id=user_id,
            display_name=display_name.strip(),
            hourly_rate=hourly_rate,
            slot_granularity=slot_granularity,
        )

    @staticmethod
    async def get_by_id(professional_id: int, db=None) -> Optional[Professional]:
        row = await ProfessionalRepository._execute_query(
            "SELECT * FROM professionals WHERE id=?", (professional_id,), fetch_one=True, db=db
        )
        return _row_to_professional(row) if row else None

    @staticmethod
    async def get_by_user_id(user_id: int) -> Optional[Professional]:
        row = await ProfessionalRepository._execute_query(
            "SELECT * FROM professionals WHERE user_id=?", (user_id,), fetch_one=True
        )
        return _row_to_professional(row) if row else None

    @staticmethod
    async def list_active() -> List[Professional]:
        rows = await ProfessionalRepository._execute_query(
            "SELECT * FROM professionals WHERE is_active=1 ORDER BY display_name",
            fetch_all=True,
        )
        return [_row_to_professional(row) for row in rows or []]

    @staticmethod
    async def update_granularity(professional_id: int, slot_granularity: int) -> bool:
        """Изменить шаг слотов (15/30/60 минут)"""
        if slot_granularity not in ALLOWED_SLOT_GRANULARITIES:
            raise ValidationError(f"Slot granularity must be one of {ALLOWED_SLOT_GRANULARITIES}")
        changed = await ProfessionalRepository._execute_query(
            "UPDATE professionals SET slot_granularity=? WHERE id=?",
            (slot_granularity, professional_id),
            commit=True,
        )
        return changed > 0

    @staticmethod
    async def delete(professional_id: int) -> bool:
        """Удалить профиль (правила и блокировки удаляются каскадом)"""
        changed = await ProfessionalRepository._execute_query(
            "DELETE FROM professionals WHERE id=?", (professional_id,), commit=True
        )
        return changed > 0
