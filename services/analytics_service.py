"""Сервис аналитики"""

from datetime import timedelta
from typing import Dict, List, Tuple

from database.base_repository import BaseRepository
from database.models import ProStats, ReservationStatus
from database.repositories.analytics_repository import AnalyticsRepository
from database.repositories.user_repository import UserRepository
from utils.datetime_utils import day_bounds, now_local, to_db


class AnalyticsService:
    """Сервис для статистики специалиста"""

    @staticmethod
    async def get_dashboard_stats(professional_id: int) -> ProStats:
        return await AnalyticsRepository.get_pro_stats(professional_id)

    @staticmethod
    async def get_top_clients(professional_id: int, limit: int = 3) -> List[Tuple[str, int]]:
        """Постоянные клиенты: имя и число завершённых записей"""
        rows = await AnalyticsRepository.get_top_clients(professional_id, limit)
        result = []
        for client_id, total in rows:
            username = await UserRepository.get_username(client_id)
            result.append((f"@{username}" if username else f"ID {client_id}", total))
        return result

    @staticmethod
    async def get_recommendations(professional_id: int) -> List[Dict]:
        """Подсказки специалисту по загрузке и отменам"""
        recommendations = []
        now = now_local()
        day_start, day_end = day_bounds(now.date())

        today_count = await BaseRepository._count(
            "reservations",
            "professional_id=? AND status IN (?, ?) AND start_at >= ? AND start_at < ?",
            (
                professional_id,
                ReservationStatus.PENDING.value,
                ReservationStatus.CONFIRMED.value,
                to_db(day_start),
                to_db(day_end),
            ),
        )
        if today_count < 3:
            recommendations.append({
                'icon': '⚠️',
                'title': 'Низкая загрузка сегодня',
                'text': f'Только {today_count} записей. Откройте больше слотов или сделайте промо-акцию.'
            })

        week_ago = to_db(now - timedelta(days=7))
        weekly_cancels = await BaseRepository._count(
            "reservations",
            "professional_id=? AND status=? AND updated_at > ?",
            (professional_id, ReservationStatus.CANCELLED.value, week_ago),
        )
        if weekly_cancels > 5:
            recommendations.append({
                'icon': '📉',
                'title': 'Много отмен за неделю',
                'text': f'{weekly_cancels} отмен. Включите напоминания и проверьте расписание.'
            })

        pending = await BaseRepository._count(
            "reservations",
            "professional_id=? AND status=? AND start_at > ?",
            (professional_id, ReservationStatus.PENDING.value, to_db(now)),
        )
        if pending:
            recommendations.append({
                'icon': '⏳',
                'title': 'Неподтверждённые записи',
                'text': f'{pending} записей ждут подтверждения.'
            })

        return recommendations
