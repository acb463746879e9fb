"""Пакет для версий миграций"""

from database.migrations.versions.v001_initial_schema import InitialSchema
from database.migrations.versions.v002_reservation_overlap_guard import ReservationOverlapGuard

ALL_MIGRATIONS = [InitialSchema, ReservationOverlapGuard]

__all__ = ["InitialSchema", "ReservationOverlapGuard", "ALL_MIGRATIONS"]
