"""Тесты для слоя БД

Покрывает:
- Миграции и схему
- Пользователей, специалистов и услуги
- Недельные правила и блокировки
- Отзывы и статистику
"""

from datetime import timedelta

import aiosqlite
import pytest

from conftest import at
from config import DATABASE_PATH
from database.migrations.migration_manager import MigrationManager
from database.migrations.versions import ALL_MIGRATIONS
from database.models import AvailabilityRule, Break, Reservation, ReservationStatus
from database.queries import Database
from database.repositories.analytics_repository import AnalyticsRepository
from database.repositories.availability_repository import AvailabilityRepository
from database.repositories.professional_repository import ProfessionalRepository
from database.repositories.reservation_repository import ReservationRepository
from database.repositories.review_repository import ReviewRepository
from database.repositories.service_repository import ServiceRepository
from database.repositories.user_repository import UserRepository
from services.errors import AuthorizationError, NotFoundError, ValidationError


class TestDatabaseInit:
    """Тесты инициализации БД"""

    async def test_init_db_creates_tables(self, init_database):
        """Инициализация создает все таблицы"""
        async with aiosqlite.connect(DATABASE_PATH) as db:
            for table in (
                "users",
                "professionals",
                "services",
                "availability_rules",
                "blocked_periods",
                "reservations",
                "reviews",
                "analytics",
            ):
                async with db.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
                ) as cursor:
                    assert await cursor.fetchone() is not None, f"Table {table} not created"

    async def test_overlap_triggers_installed(self, init_database):
        async with aiosqlite.connect(DATABASE_PATH) as db:
            async with db.execute(
                "SELECT name FROM sqlite_master WHERE type='trigger' ORDER BY name"
            ) as cursor:
                triggers = [row[0] for row in await cursor.fetchall()]

        assert "trg_reservations_no_overlap_insert" in triggers
        assert "trg_reservations_no_overlap_update" in triggers

    async def test_migrations_are_idempotent(self, init_database):
        await Database.init_db()

        manager = MigrationManager(DATABASE_PATH)
        manager.register_all(ALL_MIGRATIONS)
        assert await manager.get_current_version() == manager.latest_version == 2

    def test_duplicate_migration_version_rejected(self):
        manager = MigrationManager(DATABASE_PATH)
        manager.register_all(ALL_MIGRATIONS)

        with pytest.raises(ValueError):
            manager.register(ALL_MIGRATIONS[0])

    async def test_log_event(self, init_database):
        await Database.log_event(12345, "test_event", "payload")

        async with aiosqlite.connect(DATABASE_PATH) as db:
            async with db.execute(
                "SELECT event, data FROM analytics WHERE user_id=?", (12345,)
            ) as cursor:
                assert await cursor.fetchone() == ("test_event", "payload")


class TestUserOperations:
    """Тесты пользователей"""

    async def test_register_user_idempotent(self, init_database):
        assert await UserRepository.register_user(12345, "first") is True
        assert await UserRepository.register_user(12345, "renamed") is False

        assert await UserRepository.get_username(12345) == "renamed"
        assert await UserRepository.get_total_users_count() == 1
        assert await UserRepository.exists(12345)
        assert not await UserRepository.exists(54321)


class TestProfessionalOperations:
    """Тесты специалистов и услуг"""

    async def test_create_and_fetch(self, create_professional):
        professional = await create_professional(slot_granularity=15)

        fetched = await ProfessionalRepository.get_by_user_id(professional.user_id)
        assert fetched.id == professional.id
        assert fetched.slot_granularity == 15
        assert [p.id for p in await ProfessionalRepository.list_active()] == [professional.id]

    async def test_one_profile_per_user(self, create_professional):
        await create_professional()

        with pytest.raises(ValidationError):
            await create_professional()

    @pytest.mark.parametrize("granularity", [0, 10, 45, 120])
    async def test_invalid_granularity(self, create_professional, granularity):
        with pytest.raises(ValidationError):
            await create_professional(slot_granularity=granularity)

    async def test_update_granularity(self, create_professional):
        professional = await create_professional()

        assert await ProfessionalRepository.update_granularity(professional.id, 30)
        assert (await ProfessionalRepository.get_by_id(professional.id)).slot_granularity == 30
        with pytest.raises(ValidationError):
            await ProfessionalRepository.update_granularity(professional.id, 20)

    async def test_service_validation(self, create_professional, create_service):
        professional = await create_professional()

        with pytest.raises(ValidationError):
            await create_service(professional.id, duration_minutes=0)
        with pytest.raises(ValidationError):
            await create_service(professional.id, price=-1)

        # Бесплатная услуга допустима
        free_id = await create_service(professional.id, name="Консультация", price=0)
        assert (await ServiceRepository.get_service_by_id(free_id)).price == 0

    async def test_duplicate_service_name(self, create_professional, create_service):
        professional = await create_professional()
        await create_service(professional.id, name="Стрижка")

        with pytest.raises(ValidationError):
            await create_service(professional.id, name="Стрижка")

    async def test_deactivated_service_hidden(self, create_professional, create_service):
        professional = await create_professional()
        service_id = await create_service(professional.id)

        assert await ServiceRepository.deactivate_service(service_id, professional.id)
        assert await ServiceRepository.get_services(professional.id) == []
        assert len(await ServiceRepository.get_services(professional.id, active_only=False)) == 1

    async def test_delete_cascades_schedule(self, create_professional, create_service, next_sunday):
        professional = await create_professional()
        await create_service(professional.id)
        await AvailabilityRepository.upsert_rule(
            professional.id, AvailabilityRule(day_of_week=0, start_time=540, end_time=1080)
        )
        await AvailabilityRepository.create_blocked_period(professional.id, next_sunday, next_sunday)

        assert await ProfessionalRepository.delete(professional.id)

        assert await AvailabilityRepository.get_rules(professional.id) == []
        assert await AvailabilityRepository.get_blocked_periods(professional.id) == []
        assert await ServiceRepository.get_services(professional.id, active_only=False) == []


class TestAvailabilityRules:
    """Недельные правила"""

    async def test_upsert_replaces_rule_for_day(self, create_professional):
        professional = await create_professional()

        await AvailabilityRepository.upsert_rule(
            professional.id, AvailabilityRule(day_of_week=0, start_time=540, end_time=1080)
        )
        await AvailabilityRepository.upsert_rule(
            professional.id,
            AvailabilityRule(
                day_of_week=0, start_time=600, end_time=1200, breaks=(Break(780, 840),)
            ),
        )

        rules = await AvailabilityRepository.get_rules(professional.id)
        assert len(rules) == 1
        assert rules[0].start_time == 600
        assert rules[0].breaks == (Break(780, 840),)

    async def test_replace_rules(self, create_professional):
        professional = await create_professional()
        await AvailabilityRepository.upsert_rule(
            professional.id, AvailabilityRule(day_of_week=3, start_time=540, end_time=1080)
        )

        await AvailabilityRepository.replace_rules(
            professional.id,
            [
                AvailabilityRule(day_of_week=0, start_time=540, end_time=1080),
                AvailabilityRule(day_of_week=1, start_time=540, end_time=720),
            ],
        )

        rules = await AvailabilityRepository.get_rules(professional.id)
        assert [r.day_of_week for r in rules] == [0, 1]

    async def test_replace_rules_rejects_duplicate_days(self, create_professional):
        professional = await create_professional()

        with pytest.raises(ValidationError):
            await AvailabilityRepository.replace_rules(
                professional.id,
                [
                    AvailabilityRule(day_of_week=0, start_time=540, end_time=600),
                    AvailabilityRule(day_of_week=0, start_time=700, end_time=800),
                ],
            )


class TestBlockedPeriods:
    """Блокировки"""

    async def test_end_before_start(self, create_professional, next_sunday):
        professional = await create_professional()

        with pytest.raises(ValidationError):
            await AvailabilityRepository.create_blocked_period(
                professional.id, next_sunday, next_sunday - timedelta(days=1)
            )

    async def test_overlapping_block_rejected(self, create_professional, next_sunday):
        professional = await create_professional()
        await AvailabilityRepository.create_blocked_period(
            professional.id, next_sunday, next_sunday + timedelta(days=3), "Отпуск"
        )

        with pytest.raises(ValidationError):
            await AvailabilityRepository.create_blocked_period(
                professional.id, next_sunday + timedelta(days=3), next_sunday + timedelta(days=5)
            )

        # Соседний период допустим
        await AvailabilityRepository.create_blocked_period(
            professional.id, next_sunday + timedelta(days=4), next_sunday + timedelta(days=5)
        )

    async def test_block_with_pending_reservation_rejected(self, pro_and_client, next_sunday):
        professional, client_id = pro_and_client
        await ReservationRepository.insert(
            Reservation(
                id=None,
                professional_id=professional.id,
                client_id=client_id,
                start_at=at(next_sunday, "10:00"),
                end_at=at(next_sunday, "11:00"),
                total_price=100,
            )
        )

        with pytest.raises(ValidationError):
            await AvailabilityRepository.create_blocked_period(professional.id, next_sunday, next_sunday)

        # Следующий день свободен
        next_day = next_sunday + timedelta(days=1)
        period = await AvailabilityRepository.create_blocked_period(professional.id, next_day, next_day)
        assert period.id is not None

    async def test_range_query(self, create_professional, next_sunday):
        professional = await create_professional()
        await AvailabilityRepository.create_blocked_period(professional.id, next_sunday, next_sunday)

        inside = await AvailabilityRepository.get_blocked_periods(professional.id, next_sunday, next_sunday)
        outside = await AvailabilityRepository.get_blocked_periods(
            professional.id, next_sunday + timedelta(days=1), next_sunday + timedelta(days=2)
        )
        assert len(inside) == 1
        assert outside == []

    async def test_delete_checks_owner(self, create_professional, next_sunday):
        owner = await create_professional()
        other = await create_professional(user_id=2000, display_name="Борис")
        period = await AvailabilityRepository.create_blocked_period(owner.id, next_sunday, next_sunday)

        with pytest.raises(AuthorizationError):
            await AvailabilityRepository.delete_blocked_period(period.id, other.id)
        with pytest.raises(NotFoundError):
            await AvailabilityRepository.delete_blocked_period(period.id + 100, owner.id)

        assert await AvailabilityRepository.delete_blocked_period(period.id, owner.id)
        assert await AvailabilityRepository.get_blocked_periods(owner.id) == []


class TestReviews:
    """Отзывы и статистика"""

    @pytest.fixture
    async def completed(self, pro_and_client, next_sunday):
        professional, client_id = pro_and_client
        reservation = await ReservationRepository.insert(
            Reservation(
                id=None,
                professional_id=professional.id,
                client_id=client_id,
                start_at=at(next_sunday, "10:00"),
                end_at=at(next_sunday, "11:00"),
                total_price=150,
                status=ReservationStatus.COMPLETED,
            )
        )
        return professional, client_id, reservation

    async def test_one_review_per_reservation(self, completed):
        _, client_id, reservation = completed

        review = await ReviewRepository.add_review(reservation.id, client_id, 5, "Отлично")
        assert review.id is not None

        with pytest.raises(ValidationError):
            await ReviewRepository.add_review(reservation.id, client_id, 4)

    async def test_only_client_can_review(self, completed):
        _, _, reservation = completed

        with pytest.raises(AuthorizationError):
            await ReviewRepository.add_review(reservation.id, 31337, 5)

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_range(self, completed, rating):
        _, client_id, reservation = completed

        with pytest.raises(ValidationError):
            await ReviewRepository.add_review(reservation.id, client_id, rating)

    async def test_pending_reservation_cannot_be_reviewed(self, pro_and_client, next_sunday):
        professional, client_id = pro_and_client
        reservation = await ReservationRepository.insert(
            Reservation(
                id=None,
                professional_id=professional.id,
                client_id=client_id,
                start_at=at(next_sunday, "12:00"),
                end_at=at(next_sunday, "13:00"),
                total_price=100,
            )
        )

        with pytest.raises(ValidationError):
            await ReviewRepository.add_review(reservation.id, client_id, 5)
        with pytest.raises(NotFoundError):
            await ReviewRepository.add_review(999999, client_id, 5)

    async def test_pro_stats(self, completed):
        professional, client_id, reservation = completed
        await ReviewRepository.add_review(reservation.id, client_id, 4)

        stats = await AnalyticsRepository.get_pro_stats(professional.id)

        assert stats.status_counts == {ReservationStatus.COMPLETED: 1}
        assert stats.revenue == 150
        assert stats.avg_rating == 4.0
        assert stats.reviews_count == 1
        assert [r.rating for r in await ReviewRepository.get_for_professional(professional.id)] == [4]

    async def test_top_clients(self, completed):
        professional, client_id, _ = completed

        assert await AnalyticsRepository.get_top_clients(professional.id) == [(client_id, 1)]
