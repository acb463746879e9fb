"""Главный файл приложения"""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import BOT_TOKEN, TIMEZONE
from database.queries import Database
from handlers import booking_handlers, pro_handlers, user_handlers
from services.booking_service import BookingService

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


async def main():
    """Главная функция"""
    # Инициализация
    bot = Bot(token=BOT_TOKEN)
    storage = MemoryStorage()
    dp = Dispatcher(storage=storage)

    # Задачи напоминаний и автозавершения выполняются в event loop бота
    scheduler = AsyncIOScheduler(
        timezone=TIMEZONE,
        job_defaults={
            'coalesce': True,
            'max_instances': 1,
            'misfire_grace_time': 3600,
        }
    )

    # Инициализация БД
    await Database.init_db()

    # Сервисы
    booking_service = BookingService(scheduler, bot)

    # Регистрация сервисов для dependency injection
    dp["booking_service"] = booking_service

    # Регистрация роутеров (ВАЖЕН ПОРЯДОК!)
    dp.include_router(pro_handlers.router)        # 1. Специалист первым (FSM-ввод)
    dp.include_router(booking_handlers.router)    # 2. Бронирования
    dp.include_router(user_handlers.router)       # 3. Пользователи последним

    # Восстановление задач планировщика
    await booking_service.restore_jobs()

    # Запуск планировщика
    scheduler.start()

    logging.info("🚀 Bot started")

    try:
        await dp.start_polling(bot, skip_updates=True)
    finally:
        await bot.session.close()
        scheduler.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
