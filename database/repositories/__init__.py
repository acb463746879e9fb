"""Репозитории для работы с базой данных"""

from database.repositories.analytics_repository import AnalyticsRepository
from database.repositories.availability_repository import AvailabilityRepository
from database.repositories.professional_repository import ProfessionalRepository
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.review_repository import ReviewRepository
from database.repositories.service_repository import ServiceRepository
from database.repositories.user_repository import UserRepository

__all__ = [
    "AnalyticsRepository",
    "AvailabilityRepository",
    "ProfessionalRepository",
    "ReservationRepository",
    "ReviewRepository",
    "ServiceRepository",
    "UserRepository",
]
