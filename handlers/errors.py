"""Сообщения пользователю для ошибок бронирования"""

from services.errors import BookingError

ERROR_MESSAGES = {
    "validation_error": "⚠️ Некорректный запрос",
    "slot_unavailable": "❌ Этот слот уже занят!",
    "invalid_transition": "⚠️ Это действие недоступно для текущего статуса записи",
    "not_found": "🔍 Не найдено",
    "forbidden": "⛔ Недостаточно прав",
}


def describe_error(error: BookingError) -> str:
    """Текст для пользователя по коду ошибки"""
    return ERROR_MESSAGES.get(error.code, "❌ Ошибка бронирования")
