"""Ошибки бронирования

Все ошибки восстановимы на уровне обработчиков: каждая несёт ``code``,
по которому обработчик подбирает сообщение для пользователя.
"""


class BookingError(Exception):
    """Базовая ошибка движка бронирования"""

    code = "booking_error"

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.code)
        self.details = details


class ValidationError(BookingError):
    """Некорректный запрос (дата в прошлом, неверные параметры)"""

    code = "validation_error"


class SlotUnavailableError(BookingError):
    """Запрошенный слот не свободен или вне рабочего времени"""

    code = "slot_unavailable"


class InvalidTransitionError(BookingError):
    """Переход статуса запрещён жизненным циклом записи"""

    code = "invalid_transition"


class NotFoundError(BookingError):
    """Неизвестный специалист, клиент, услуга или запись"""

    code = "not_found"


class AuthorizationError(BookingError):
    """Пользователь не может выполнить это действие"""

    code = "forbidden"
