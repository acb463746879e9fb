"""Тесты обработчиков календаря записи"""

from unittest.mock import AsyncMock, Mock

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from database.repositories.service_repository import ServiceRepository
from handlers.booking_handlers import CALENDAR_HINT, back_calendar, month_nav
from handlers.errors import ERROR_MESSAGES
from utils.datetime_utils import now_local


def make_callback(data: str, user_id: int = 12345):
    callback = Mock()
    callback.data = data
    callback.from_user.id = user_id
    callback.answer = AsyncMock()
    callback.message.edit_text = AsyncMock()
    return callback


@pytest.fixture
def state():
    return FSMContext(
        storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=12345, user_id=12345)
    )


@pytest.fixture
async def hidden_service(pro_and_client, create_service):
    """Услуга, снятая специалистом посреди записи"""
    professional, _ = pro_and_client
    service_id = await create_service(professional.id)
    await ServiceRepository.deactivate_service(service_id, professional.id)
    return professional, service_id


@pytest.mark.integration
class TestCalendarHandlers:
    """Календарь при устаревшей сессии"""

    async def test_month_nav_with_hidden_service(self, booking_service, state, hidden_service):
        professional, service_id = hidden_service
        await state.update_data(professional_id=professional.id, service_id=service_id)
        today = now_local()
        callback = make_callback(f"cal:{today.year}-{today.month:02d}")

        await month_nav(callback, state, booking_service)

        callback.message.edit_text.assert_awaited_once_with(ERROR_MESSAGES["not_found"])
        assert await state.get_data() == {}

    async def test_back_calendar_with_hidden_service(self, booking_service, state, hidden_service):
        professional, service_id = hidden_service
        await state.update_data(professional_id=professional.id, service_id=service_id)
        callback = make_callback("back_calendar")

        await back_calendar(callback, state, booking_service)

        callback.message.edit_text.assert_awaited_once_with(ERROR_MESSAGES["not_found"])
        assert await state.get_state() is None

    async def test_month_nav_renders_calendar(self, booking_service, state, pro_and_client):
        professional, _ = pro_and_client
        await state.update_data(professional_id=professional.id)
        today = now_local()
        callback = make_callback(f"cal:{today.year}-{today.month:02d}")

        await month_nav(callback, state, booking_service)

        args, kwargs = callback.message.edit_text.await_args
        assert args == (CALENDAR_HINT,)
        assert kwargs["reply_markup"] is not None
