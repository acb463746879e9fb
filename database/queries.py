"""Инициализация БД и общие запросы"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from config import DATABASE_PATH
from database.base_repository import BaseRepository
from database.migrations.migration_manager import MigrationManager
from database.migrations.versions import ALL_MIGRATIONS
from utils.datetime_utils import now_local


class Database:
    """Класс для работы с базой данных"""

    @staticmethod
    async def init_db():
        """Инициализация БД: применяет все миграции"""
        manager = MigrationManager(DATABASE_PATH)
        manager.register_all(ALL_MIGRATIONS)
        await manager.migrate()
        logging.info(
            f"Database initialized at version {manager.latest_version} "
            "with double-booking protection"
        )

    @staticmethod
    @asynccontextmanager
    async def connect() -> AsyncIterator[aiosqlite.Connection]:
        """Соединение для транзакций сервисов (foreign keys + Row)"""
        async with BaseRepository._connect() as db:
            yield db

    @staticmethod
    async def log_event(user_id: int, event: str, data: str = ""):
        """Логирование событий с обработкой ошибок"""
        try:
            async with aiosqlite.connect(DATABASE_PATH) as db:
                await db.execute(
                    "INSERT INTO analytics (user_id, event, data, timestamp) VALUES (?, ?, ?, ?)",
                    (user_id, event, data, now_local().isoformat()),
                )
                await db.commit()
        except Exception as e:
            # Не падаем, только логируем
            logging.error(f"Failed to log event {event} for user {user_id}: {e}")
