"""Начальная схема базы данных"""

from database.migrations.migration_manager import Migration


class InitialSchema(Migration):
    version = 1
    description = "Initial schema: professionals, schedules, services, reservations, reviews"

    async def upgrade(self, db):
        # Таблицы
        await db.execute(
            """CREATE TABLE IF NOT EXISTS users
            (user_id INTEGER PRIMARY KEY,
            username TEXT,
            first_seen TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS professionals
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            display_name TEXT NOT NULL,
            hourly_rate REAL NOT NULL DEFAULT 0 CHECK (hourly_rate >= 0),
            slot_granularity INTEGER NOT NULL DEFAULT 60
                CHECK (slot_granularity IN (15, 30, 60)),
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS services
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            professional_id INTEGER NOT NULL
                REFERENCES professionals(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
            price REAL NOT NULL DEFAULT 0 CHECK (price >= 0),
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            UNIQUE(professional_id, name))"""
        )

        # Одно правило на день недели у специалиста (upsert)
        await db.execute(
            """CREATE TABLE IF NOT EXISTS availability_rules
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            professional_id INTEGER NOT NULL
                REFERENCES professionals(id) ON DELETE CASCADE,
            day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
            is_available INTEGER NOT NULL DEFAULT 1,
            start_time INTEGER NOT NULL,
            end_time INTEGER NOT NULL,
            breaks TEXT NOT NULL DEFAULT '[]',
            CHECK (start_time < end_time),
            UNIQUE(professional_id, day_of_week))"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS blocked_periods
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            professional_id INTEGER NOT NULL
                REFERENCES professionals(id) ON DELETE CASCADE,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            reason TEXT,
            created_at TEXT NOT NULL,
            CHECK (start_date <= end_date))"""
        )

        # Записи не удаляются и не каскадятся: CANCELLED/REJECTED остаются для истории
        await db.execute(
            """CREATE TABLE IF NOT EXISTS reservations
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            professional_id INTEGER NOT NULL REFERENCES professionals(id),
            client_id INTEGER NOT NULL REFERENCES users(user_id),
            service_id INTEGER REFERENCES services(id),
            start_at TEXT NOT NULL,
            end_at TEXT NOT NULL,
            total_price REAL NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'PENDING'
                CHECK (status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'REJECTED')),
            rejection_reason TEXT,
            reminder_sent INTEGER NOT NULL DEFAULT 0,
            review_requested INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            CHECK (start_at < end_at))"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS reviews
            (id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL UNIQUE REFERENCES reservations(id),
            client_id INTEGER NOT NULL,
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            comment TEXT,
            created_at TEXT NOT NULL)"""
        )

        await db.execute(
            """CREATE TABLE IF NOT EXISTS analytics
            (user_id INTEGER, event TEXT, data TEXT, timestamp TEXT)"""
        )

        # Индексы для производительности
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_reservations_pro_time "
            "ON reservations(professional_id, start_at, end_at)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_reservations_client ON reservations(client_id)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_reservations_status ON reservations(status)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_blocked_pro_dates "
            "ON blocked_periods(professional_id, start_date, end_date)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_services_pro ON services(professional_id, is_active)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_analytics_user ON analytics(user_id, event)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_analytics_timestamp ON analytics(timestamp)"
        )

    async def downgrade(self, db):
        await db.execute("DROP TABLE IF EXISTS reviews")
        await db.execute("DROP TABLE IF EXISTS reservations")
        await db.execute("DROP TABLE IF EXISTS blocked_periods")
        await db.execute("DROP TABLE IF EXISTS availability_rules")
        await db.execute("DROP TABLE IF EXISTS services")
        await db.execute("DROP TABLE IF EXISTS professionals")
        await db.execute("DROP TABLE IF EXISTS users")
        await db.execute("DROP TABLE IF EXISTS analytics")
