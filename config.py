"""Конфигурация приложения"""

import os

import pytz
from dotenv import load_dotenv

load_dotenv()

# Telegram
BOT_TOKEN = os.getenv("BOT_TOKEN")

if not BOT_TOKEN:
    raise ValueError("BOT_TOKEN not found in .env file")

# База данных
DATABASE_PATH = os.getenv("DATABASE_PATH", "anireserve.db")

# Временная зона (все слоты считаются в ней)
TIMEZONE = pytz.timezone(os.getenv("TIMEZONE", "Asia/Jerusalem"))

# Настройки слотов
DEFAULT_SLOT_GRANULARITY = 60
ALLOWED_SLOT_GRANULARITIES = (15, 30, 60)
DEFAULT_SERVICE_DURATION = 60
SLOTS_LOOKAHEAD_DAYS = 7

# Повторная попытка вставки при конфликте на уровне БД
BOOKING_INSERT_RETRIES = 1

# Напоминания
REMINDER_HOURS_BEFORE = int(os.getenv("REMINDER_HOURS_BEFORE", "24"))

# Уведомления
NOTIFY_MAX_ATTEMPTS = 3
NOTIFY_RETRY_DELAY = 0.5  # секунды

# Ограничения навигации календаря
CALENDAR_MAX_MONTHS_AHEAD = 3  # Максимум месяцев вперёд для бронирования

CURRENCY = "₪"

# Названия месяцев
MONTH_NAMES = [
    "Январь",
    "Февраль",
    "Март",
    "Апрель",
    "Май",
    "Июнь",
    "Июль",
    "Август",
    "Сентябрь",
    "Октябрь",
    "Ноябрь",
    "Декабрь",
]

# Названия дней недели (0 = воскресенье, как в правилах доступности)
DAY_NAMES = [
    "воскресенье",
    "понедельник",
    "вторник",
    "среду",
    "четверг",
    "пятницу",
    "субботу",
]

DAY_NAMES_SHORT = ["Вс", "Пн", "Вт", "Ср", "Чт", "Пт", "Сб"]
