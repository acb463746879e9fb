"""Конфигурация pytest и общие фикстуры для всех тестов

Этот файл содержит:
- Настройку тестовой среды
- Mock объекты для aiogram (Bot) и APScheduler
- Фикстуры для БД и фабрики тестовых данных
- Автоматическую очистку после тестов
"""

import os
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock

import pytest
from aiogram.types import Chat, Message
from apscheduler.jobstores.base import JobLookupError

# Добавляем корневую папку в PYTHONPATH
sys.path.insert(0, str(Path(__file__).parent.parent))

# ============================================================================
# НАСТРОЙКА ТЕСТОВОЙ СРЕДЫ
# ============================================================================

# Настройка переменных окружения ДО импорта config
os.environ["DATABASE_PATH"] = "./test_anireserve.db"
os.environ["BOT_TOKEN"] = "1234567890:ABCdefGHIjklMNOpqrsTUVwxyz12345678"
os.environ["TIMEZONE"] = "Asia/Jerusalem"

# Теперь можно импортировать модули проекта
from config import DATABASE_PATH, TIMEZONE  # noqa: E402
from database.models import Service  # noqa: E402
from database.queries import Database  # noqa: E402
from database.repositories.professional_repository import ProfessionalRepository  # noqa: E402
from database.repositories.service_repository import ServiceRepository  # noqa: E402
from database.repositories.user_repository import UserRepository  # noqa: E402
from services.booking_service import BookingService  # noqa: E402
from utils.datetime_utils import day_of_week, localize_datetime, now_local  # noqa: E402


# ============================================================================
# PYTEST КОНФИГУРАЦИЯ
# ============================================================================


def pytest_configure(config):
    """Регистрация пользовательских маркеров"""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: integration test")
    config.addinivalue_line("markers", "unit: unit test")


# ============================================================================
# ОЧИСТКА БД
# ============================================================================


@pytest.fixture(autouse=True)
async def cleanup_database():
    """Автоматическая очистка БД после каждого теста"""
    yield

    if not os.path.exists(DATABASE_PATH):
        return

    import aiosqlite

    try:
        async with aiosqlite.connect(DATABASE_PATH) as db:
            for table in (
                "reviews",
                "reservations",
                "blocked_periods",
                "availability_rules",
                "services",
                "professionals",
                "users",
                "analytics",
            ):
                await db.execute(f"DELETE FROM {table}")
            await db.commit()
    except Exception as e:
        print(f"Warning: Failed to cleanup test database: {e}")


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_db_on_exit():
    """Удаляем тестовую БД после всех тестов"""
    yield

    if os.path.exists(DATABASE_PATH):
        try:
            os.remove(DATABASE_PATH)
            print(f"\n✅ Cleaned up test database: {DATABASE_PATH}")
        except Exception as e:
            print(f"\n⚠️  Warning: Could not remove test database: {e}")


@pytest.fixture
async def init_database():
    """Инициализация тестовой БД"""
    await Database.init_db()
    yield


# ============================================================================
# MOCK SCHEDULER
# ============================================================================


class MockScheduler:
    """Mock APScheduler для тестов"""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.job_history: List[Dict[str, Any]] = []

    def add_job(
        self,
        func,
        trigger,
        run_date=None,
        args=None,
        kwargs=None,
        id=None,
        replace_existing=False,
    ):
        """Мок add_job"""
        if id:
            if id in self.jobs and not replace_existing:
                raise Exception(f"Job {id} already exists")

            self.jobs[id] = {
                "func": func,
                "trigger": trigger,
                "run_date": run_date,
                "args": args or [],
                "kwargs": kwargs or {},
            }
            self.job_history.append({"action": "add", "id": id})
        return Mock()

    def remove_job(self, job_id: str):
        """Мок remove_job"""
        if job_id in self.jobs:
            del self.jobs[job_id]
            self.job_history.append({"action": "remove", "id": job_id})
        else:
            raise JobLookupError(job_id)

    def get_job(self, job_id: str):
        """Мок get_job"""
        return self.jobs.get(job_id)

    def get_jobs(self) -> List:
        """Мок get_jobs"""
        return list(self.jobs.values())

    async def run_job(self, job_id: str):
        """Выполнить задачу немедленно"""
        job = self.jobs[job_id]
        return await job["func"](*job["args"], **job["kwargs"])

    def shutdown(self, wait=True):
        """Мок shutdown"""
        self.jobs.clear()

    def clear_history(self):
        """Очистить историю для тестов"""
        self.job_history.clear()


@pytest.fixture
def mock_scheduler():
    """Фикстура mock scheduler"""
    return MockScheduler()


# ============================================================================
# MOCK BOT
# ============================================================================


class MockBot:
    """Mock Telegram Bot для тестов"""

    def __init__(self, fail: bool = False):
        self.sent_messages: List[Dict[str, Any]] = []
        self.fail = fail
        self.session = Mock()
        self.session.close = AsyncMock()

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup=None,
        parse_mode=None,
        **kwargs,
    ):
        """Мок send_message"""
        if self.fail:
            raise RuntimeError("Telegram is unavailable")

        message_data = {
            "chat_id": chat_id,
            "text": text,
            "reply_markup": reply_markup,
            "parse_mode": parse_mode,
            **kwargs,
        }
        self.sent_messages.append(message_data)

        # Создаем mock объект Message для возврата
        message = Mock(spec=Message)
        message.message_id = len(self.sent_messages)
        message.text = text
        message.chat = Mock(spec=Chat)
        message.chat.id = chat_id
        return message

    def messages_to(self, chat_id: int) -> List[Dict[str, Any]]:
        return [m for m in self.sent_messages if m["chat_id"] == chat_id]

    def clear_history(self):
        """Очистить историю для тестов"""
        self.sent_messages.clear()


@pytest.fixture
def mock_bot():
    """Фикстура mock bot"""
    return MockBot()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
async def booking_service(mock_scheduler, mock_bot):
    """Фикстура BookingService"""
    service = BookingService(mock_scheduler, mock_bot)
    return service


# ============================================================================
# HELPER FIXTURES
# ============================================================================


def upcoming_weekday(dow: int, min_days_ahead: int = 2) -> date:
    """Ближайшая дата с днём недели dow (0 = воскресенье) не раньше чем через N дней"""
    day = now_local().date() + timedelta(days=min_days_ahead)
    while day_of_week(day) != dow:
        day += timedelta(days=1)
    return day


def at(day: date, hhmm: str) -> datetime:
    """Дата + 'ЧЧ:ММ' -> aware datetime в таймзоне приложения"""
    return localize_datetime(datetime.strptime(f"{day.isoformat()} {hhmm}", "%Y-%m-%d %H:%M"), TIMEZONE)


@pytest.fixture
def next_sunday() -> date:
    return upcoming_weekday(0)


@pytest.fixture
def next_friday() -> date:
    return upcoming_weekday(5)


# ============================================================================
# DATABASE HELPER FIXTURES
# ============================================================================


@pytest.fixture
async def create_test_user(init_database):
    """Создание тестового пользователя в БД"""

    async def _create(user_id: int = 12345, username: str = "testuser") -> int:
        await UserRepository.register_user(user_id, username)
        return user_id

    return _create


@pytest.fixture
async def create_professional(create_test_user):
    """Создание специалиста (вместе с пользователем Telegram)"""

    async def _create(
        user_id: int = 1000,
        display_name: str = "Анна",
        hourly_rate: float = 100.0,
        slot_granularity: int = 60,
    ):
        await create_test_user(user_id, f"pro{user_id}")
        return await ProfessionalRepository.create(
            user_id, display_name, hourly_rate, slot_granularity
        )

    return _create


@pytest.fixture
async def create_service(init_database):
    """Создание услуги специалиста"""

    async def _create(
        professional_id: int,
        name: str = "Массаж",
        duration_minutes: int = 90,
        price: float = 250.0,
    ) -> int:
        return await ServiceRepository.create_service(
            Service(
                id=None,
                professional_id=professional_id,
                name=name,
                duration_minutes=duration_minutes,
                price=price,
            )
        )

    return _create


@pytest.fixture
async def pro_and_client(create_professional, create_test_user):
    """Специалист с расписанием по умолчанию и клиент"""
    professional = await create_professional()
    client_id = await create_test_user(12345, "client")
    return professional, client_id


# ============================================================================
# ASSERTION HELPERS
# ============================================================================


@pytest.fixture
def assert_message_sent(mock_bot):
    """Проверка что сообщение было отправлено"""

    def _assert(text_contains: str = None, chat_id: int = None):
        messages = mock_bot.sent_messages
        assert len(messages) > 0, "No messages sent"

        if text_contains:
            found = any(text_contains in msg["text"] for msg in messages)
            assert found, f"No message contains '{text_contains}'"

        if chat_id:
            found = any(msg["chat_id"] == chat_id for msg in messages)
            assert found, f"No message sent to chat_id {chat_id}"

    return _assert


@pytest.fixture
def assert_job_scheduled(mock_scheduler):
    """Проверка что job запланирован"""

    def _assert(job_id: str):
        job = mock_scheduler.get_job(job_id)
        assert job is not None, f"Job '{job_id}' not scheduled"
        return job

    return _assert
