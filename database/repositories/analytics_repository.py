"""Репозиторий для работы с аналитикой"""

from typing import List, Tuple

from database.base_repository import BaseRepository
from database.models import ProStats, ReservationStatus
from database.repositories.reservation_repository import ReservationRepository


class AnalyticsRepository(BaseRepository):
    """Репозиторий для аналитики и статистики специалистов"""

    @staticmethod
    async def get_pro_stats(professional_id: int) -> ProStats:
        """Статистика специалиста: записи по статусам, выручка, рейтинг"""
        status_counts = await ReservationRepository.count_by_status(professional_id)

        revenue_row = await AnalyticsRepository._execute_query(
            "SELECT COALESCE(SUM(total_price), 0) FROM reservations WHERE professional_id=? AND status=?",
            (professional_id, ReservationStatus.COMPLETED.value),
            fetch_one=True,
        )

        rating_row = await AnalyticsRepository._execute_query(
            """SELECT AVG(rv.rating), COUNT(rv.id) FROM reviews rv
            JOIN reservations r ON r.id = rv.reservation_id
            WHERE r.professional_id=?""",
            (professional_id,),
            fetch_one=True,
        )

        return ProStats(
            status_counts=status_counts,
            revenue=float(revenue_row[0]) if revenue_row else 0.0,
            avg_rating=float(rating_row[0] or 0.0) if rating_row else 0.0,
            reviews_count=rating_row[1] if rating_row else 0,
        )

    @staticmethod
    async def get_top_clients(professional_id: int, limit: int = 5) -> List[Tuple]:
        """Топ клиентов специалиста по количеству завершённых записей"""
        return (
            await AnalyticsRepository._execute_query(
                """SELECT client_id, COUNT(*) AS total FROM reservations
                WHERE professional_id=? AND status=?
                GROUP BY client_id ORDER BY total DESC LIMIT ?""",
                (professional_id, ReservationStatus.COMPLETED.value, limit),
                fetch_all=True,
            )
            or []
        )
