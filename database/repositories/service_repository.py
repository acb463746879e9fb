"""Репозиторий для работы с услугами"""

import logging
from typing import List, Optional

import aiosqlite

from database.base_repository import BaseRepository
from database.models import Service
from services.errors import ValidationError
from utils.datetime_utils import now_local


def _row_to_service(row) -> Service:
    return Service(
        id=row["id"],
        professional_id=row["professional_id"],
        name=row["name"],
        duration_minutes=row["duration_minutes"],
        price=row["price"],
        is_active=bool(row["is_active"]),
    )


class ServiceRepository(BaseRepository):
    """Репозиторий для услуг"""

    @staticmethod
    async def get_services(professional_id: int, active_only: bool = True) -> List[Service]:
        """Получить услуги специалиста"""
        query = "SELECT * FROM services WHERE professional_id=?"
        if active_only:
            query += " AND is_active=1"
        query += " ORDER BY name"
        rows = await ServiceRepository._execute_query(query, (professional_id,), fetch_all=True)
        return [_row_to_service(row) for row in rows or []]

    @staticmethod
    async def get_service_by_id(service_id: int, db=None) -> Optional[Service]:
        """Получить услугу по ID"""
        row = await ServiceRepository._execute_query(
            "SELECT * FROM services WHERE id=?", (service_id,), fetch_one=True, db=db
        )
        return _row_to_service(row) if row else None

    @staticmethod
    async def create_service(service: Service) -> int:
        """Создать новую услугу"""
        if service.duration_minutes <= 0:
            raise ValidationError("Service duration must be positive")
        if service.price < 0:
            raise ValidationError("Service price must not be negative")

        try:
            service_id = await ServiceRepository._insert(
                """INSERT INTO services
                (professional_id, name, duration_minutes, price, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (service.professional_id, service.name, service.duration_minutes,
                 service.price, service.is_active, now_local().isoformat()),
            )
        except aiosqlite.IntegrityError as e:
            logging.warning(f"Cannot create service {service.name!r}: {e}")
            raise ValidationError("Service with this name already exists") from None
        return service_id

    @staticmethod
    async def deactivate_service(service_id: int, professional_id: int) -> bool:
        """Скрыть услугу (мягкое удаление, записи на неё остаются)"""
        changed = await ServiceRepository._execute_query(
            "UPDATE services SET is_active=0 WHERE id=? AND professional_id=?",
            (service_id, professional_id),
            commit=True,
        )
        return changed > 0
