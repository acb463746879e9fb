"""Повторные попытки для отправки в Telegram"""

import asyncio
import logging
from functools import wraps
from typing import Callable

from aiogram.exceptions import TelegramRetryAfter


def _retry_delay(error: Exception, current_delay: float) -> float:
    """Пауза перед следующей попыткой

    При flood control Telegram сам сообщает, сколько ждать.
    """
    if isinstance(error, TelegramRetryAfter):
        return max(float(error.retry_after), current_delay)
    return current_delay


def async_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,),
):
    """Декоратор для повторных попыток асинхронных функций

    Args:
        max_attempts: Максимальное количество попыток
        delay: Начальная задержка между попытками (секунды)
        backoff: Множитель для экспоненциальной задержки
        exceptions: Кортеж исключений, после которых пробуем снова

    Для TelegramRetryAfter ждём ``retry_after`` секунд, а не ``delay``.
    """

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logging.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise

                    wait = _retry_delay(e, current_delay)
                    logging.warning(
                        f"Attempt {attempt}/{max_attempts} of {func.__name__} failed: {e}. "
                        f"Retrying in {wait}s"
                    )
                    await asyncio.sleep(wait)
                    current_delay *= backoff

        return wrapper

    return decorator
