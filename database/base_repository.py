"""Базовый репозиторий с общими хелперами доступа к SQLite"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiosqlite

from config import DATABASE_PATH


class BaseRepository:
    """Общие методы для репозиториев

    Все методы принимают необязательный ``db``: если соединение передано,
    запрос выполняется в его транзакции, иначе открывается своё.
    """

    @staticmethod
    @asynccontextmanager
    async def _connect(db: Optional[aiosqlite.Connection] = None) -> AsyncIterator[aiosqlite.Connection]:
        """Соединение с включёнными внешними ключами и Row-фабрикой"""
        if db is not None:
            yield db
            return

        async with aiosqlite.connect(DATABASE_PATH) as conn:
            await conn.execute("PRAGMA foreign_keys = ON")
            conn.row_factory = aiosqlite.Row
            yield conn

    @staticmethod
    async def _execute_query(
        query: str,
        params: tuple = (),
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
        db: Optional[aiosqlite.Connection] = None,
    ) -> Any:
        """Выполнить запрос

        Returns:
            строку/список строк при fetch_*, иначе количество изменённых строк
        """
        async with BaseRepository._connect(db) as conn:
            async with conn.execute(query, params) as cursor:
                if fetch_one:
                    result = await cursor.fetchone()
                elif fetch_all:
                    result = await cursor.fetchall()
                else:
                    result = cursor.rowcount
            if commit and db is None:
                await conn.commit()
            return result

    @staticmethod
    async def _insert(query: str, params: tuple, db: Optional[aiosqlite.Connection] = None) -> int:
        """INSERT, возвращает id новой строки"""
        async with BaseRepository._connect(db) as conn:
            cursor = await conn.execute(query, params)
            row_id = cursor.lastrowid
            await cursor.close()
            if db is None:
                await conn.commit()
            return row_id

    @staticmethod
    async def _count(table: str, where: str = "", params: tuple = ()) -> int:
        query = f"SELECT COUNT(*) FROM {table}"
        if where:
            query += f" WHERE {where}"
        row = await BaseRepository._execute_query(query, params, fetch_one=True)
        return row[0] if row else 0

    @staticmethod
    async def _exists(
        table: str, where: str, params: tuple = (), db: Optional[aiosqlite.Connection] = None
    ) -> bool:
        row = await BaseRepository._execute_query(
            f"SELECT 1 FROM {table} WHERE {where} LIMIT 1", params, fetch_one=True, db=db
        )
        return row is not None
