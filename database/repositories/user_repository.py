"""Репозиторий для работы с пользователями"""

import logging
from typing import Optional

from database.base_repository import BaseRepository
from utils.datetime_utils import now_local


class UserRepository(BaseRepository):
    """Репозиторий для управления пользователями (клиенты = пользователи Telegram)"""

    @staticmethod
    async def register_user(user_id: int, username: Optional[str] = None) -> bool:
        """Зарегистрировать пользователя, True если он новый"""
        changed = await UserRepository._execute_query(
            "INSERT OR IGNORE INTO users (user_id, username, first_seen) VALUES (?, ?, ?)",
            (user_id, username, now_local().isoformat()),
            commit=True,
        )
        if not changed and username:
            await UserRepository._execute_query(
                "UPDATE users SET username=? WHERE user_id=?",
                (username, user_id),
                commit=True,
            )
        if changed:
            logging.info(f"New user registered: {user_id}")
        return bool(changed)

    @staticmethod
    async def exists(user_id: int, db=None) -> bool:
        return await UserRepository._exists("users", "user_id=?", (user_id,), db=db)

    @staticmethod
    async def get_username(user_id: int) -> Optional[str]:
        row = await UserRepository._execute_query(
            "SELECT username FROM users WHERE user_id=?", (user_id,), fetch_one=True
        )
        return row[0] if row else None

    @staticmethod
    async def get_total_users_count() -> int:
        """Получить общее количество пользователей"""
        return await UserRepository._count("users")
