"""Миграция: защита от двойного бронирования на уровне БД

SQLite не умеет exclusion-констрейнты, поэтому пересечение активных
записей одного специалиста запрещают триггеры. RAISE(ABORT) приходит
в приложение как IntegrityError.
"""

from database.migrations.migration_manager import Migration

ACTIVE_STATUSES_SQL = "('PENDING', 'CONFIRMED', 'COMPLETED')"


class ReservationOverlapGuard(Migration):
    version = 2
    description = "Reject overlapping active reservations with triggers"

    async def upgrade(self, db):
        await db.execute(
            f"""CREATE TRIGGER IF NOT EXISTS trg_reservations_no_overlap_insert
            BEFORE INSERT ON reservations
            WHEN NEW.status IN {ACTIVE_STATUSES_SQL}
            BEGIN
                SELECT RAISE(ABORT, 'reservation overlaps an active reservation')
                WHERE EXISTS (
                    SELECT 1 FROM reservations
                    WHERE professional_id = NEW.professional_id
                    AND status IN {ACTIVE_STATUSES_SQL}
                    AND start_at < NEW.end_at
                    AND NEW.start_at < end_at
                );
            END"""
        )

        await db.execute(
            f"""CREATE TRIGGER IF NOT EXISTS trg_reservations_no_overlap_update
            BEFORE UPDATE OF start_at, end_at, status, professional_id ON reservations
            WHEN NEW.status IN {ACTIVE_STATUSES_SQL}
            BEGIN
                SELECT RAISE(ABORT, 'reservation overlaps an active reservation')
                WHERE EXISTS (
                    SELECT 1 FROM reservations
                    WHERE professional_id = NEW.professional_id
                    AND id != NEW.id
                    AND status IN {ACTIVE_STATUSES_SQL}
                    AND start_at < NEW.end_at
                    AND NEW.start_at < end_at
                );
            END"""
        )

        # Точный дубль старта ловится ещё и индексом
        await db.execute(
            f"""CREATE UNIQUE INDEX IF NOT EXISTS idx_reservations_active_start
            ON reservations(professional_id, start_at)
            WHERE status IN {ACTIVE_STATUSES_SQL}"""
        )

    async def downgrade(self, db):
        await db.execute("DROP TRIGGER IF EXISTS trg_reservations_no_overlap_insert")
        await db.execute("DROP TRIGGER IF EXISTS trg_reservations_no_overlap_update")
        await db.execute("DROP INDEX IF EXISTS idx_reservations_active_start")
