"""Репозиторий отзывов"""

import logging
from typing import List, Optional

import aiosqlite

from database.base_repository import BaseRepository
from database.models import ReservationStatus, Review
from services.errors import AuthorizationError, NotFoundError, ValidationError
from utils.datetime_utils import now_local


class ReviewRepository(BaseRepository):
    """Отзывы клиентов о завершённых записях"""

    @staticmethod
    async def add_review(
        reservation_id: int, client_id: int, rating: int, comment: Optional[str] = None
    ) -> Review:
        """Оставить отзыв (один на запись, только владелец, только COMPLETED)"""
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", rating=rating)

        row = await ReviewRepository._execute_query(
            "SELECT client_id, status FROM reservations WHERE id=?",
            (reservation_id,),
            fetch_one=True,
        )
        if not row:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        if row["client_id"] != client_id:
            raise AuthorizationError("Only the client of the reservation can review it")
        if row["status"] != ReservationStatus.COMPLETED.value:
            raise ValidationError("Only completed reservations can be reviewed")

        try:
            review_id = await ReviewRepository._insert(
                """INSERT INTO reviews (reservation_id, client_id, rating, comment, created_at)
                VALUES (?, ?, ?, ?, ?)""",
                (reservation_id, client_id, rating, comment, now_local().isoformat()),
            )
        except aiosqlite.IntegrityError as e:
            logging.warning(f"Review already exists for reservation {reservation_id}: {e}")
            raise ValidationError("Reservation has already been reviewed") from None

        logging.info(f"Review {review_id} ({rating}★) for reservation {reservation_id}")
        return Review(
            id=review_id,
            reservation_id=reservation_id,
            client_id=client_id,
            rating=rating,
            comment=comment,
        )

    @staticmethod
    async def get_for_professional(professional_id: int, limit: int = 10) -> List[Review]:
        rows = await ReviewRepository._execute_query(
            """SELECT rv.* FROM reviews rv
            JOIN reservations r ON r.id = rv.reservation_id
            WHERE r.professional_id=?
            ORDER BY rv.created_at DESC LIMIT ?""",
            (professional_id, limit),
            fetch_all=True,
        )
        return [
            Review(
                id=row["id"],
                reservation_id=row["reservation_id"],
                client_id=row["client_id"],
                rating=row["rating"],
                comment=row["comment"],
            )
            for row in rows or []
        ]
