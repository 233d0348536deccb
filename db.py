import sqlite3
from contextlib import contextmanager
from time import time

from config import DB_PATH


def init_db():
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id                TEXT PRIMARY KEY,
                email             TEXT UNIQUE,
                first_name        TEXT NOT NULL DEFAULT '',
                last_name         TEXT NOT NULL DEFAULT '',
                profile_image_url TEXT NOT NULL DEFAULT '',
                created_at        TEXT NOT NULL,
                updated_at        TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS professionals (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                name        TEXT    NOT NULL,
                email       TEXT    NOT NULL DEFAULT '',
                specialty   TEXT    NOT NULL DEFAULT '',
                access_code TEXT    NOT NULL UNIQUE,
                user_id     TEXT    REFERENCES users(id),
                is_active   INTEGER NOT NULL DEFAULT 1,
                created_at  TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS patients (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                name           TEXT    NOT NULL,
                age            INTEGER,
                height         REAL,
                initial_weight REAL,
                target_weight  REAL,
                access_code    TEXT    NOT NULL UNIQUE,
                code_expiry    TEXT    NOT NULL,
                diet_level     INTEGER NOT NULL DEFAULT 1 CHECK (diet_level BETWEEN 1 AND 5),
                medical_notes  TEXT    NOT NULL DEFAULT '',
                user_id        TEXT    REFERENCES users(id),
                professional_id INTEGER REFERENCES professionals(id),
                is_active      INTEGER NOT NULL DEFAULT 1,
                created_at     TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS weight_records (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                patient_id  INTEGER NOT NULL REFERENCES patients(id),
                weight      REAL    NOT NULL,
                notes       TEXT    NOT NULL DEFAULT '',
                recorded_at TEXT    NOT NULL,
                recorded_by INTEGER REFERENCES professionals(id)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS mood_entries (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                patient_id       INTEGER NOT NULL REFERENCES patients(id),
                mood_level       INTEGER NOT NULL CHECK (mood_level BETWEEN 1 AND 5),
                energy_level     INTEGER NOT NULL CHECK (energy_level BETWEEN 1 AND 5),
                motivation_level INTEGER NOT NULL CHECK (motivation_level BETWEEN 1 AND 5),
                notes            TEXT    NOT NULL DEFAULT '',
                tags             TEXT    NOT NULL DEFAULT '[]',
                created_at       TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS diet_levels (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                name           TEXT    NOT NULL,
                description    TEXT    NOT NULL,
                category       TEXT    NOT NULL,
                level          INTEGER NOT NULL,
                glycemic_index TEXT    NOT NULL,
                is_active      INTEGER NOT NULL DEFAULT 1
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS meal_plans (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                diet_level_id  INTEGER NOT NULL REFERENCES diet_levels(id),
                meal_type      TEXT    NOT NULL,
                option_number  INTEGER NOT NULL DEFAULT 1,
                title          TEXT    NOT NULL,
                description    TEXT    NOT NULL DEFAULT '',
                beverages      TEXT    NOT NULL DEFAULT '[]',
                allowed_breads TEXT    NOT NULL DEFAULT '[]',
                proteins       TEXT    NOT NULL DEFAULT '[]',
                fruits         TEXT    NOT NULL DEFAULT '[]',
                vegetables     TEXT    NOT NULL DEFAULT '[]',
                cereals        TEXT    NOT NULL DEFAULT '[]',
                others         TEXT    NOT NULL DEFAULT '[]',
                is_active      INTEGER NOT NULL DEFAULT 1
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS recipes (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                meal_plan_id     INTEGER REFERENCES meal_plans(id),
                name             TEXT    NOT NULL,
                description      TEXT    NOT NULL DEFAULT '',
                ingredients      TEXT    NOT NULL DEFAULT '[]',
                instructions     TEXT    NOT NULL DEFAULT '[]',
                preparation_time INTEGER,
                category         TEXT    NOT NULL,
                is_active        INTEGER NOT NULL DEFAULT 1
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS food_items (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                name            TEXT    NOT NULL,
                category        TEXT    NOT NULL,
                allowed_in_diet TEXT    NOT NULL DEFAULT '[]',
                quantity        TEXT    NOT NULL DEFAULT '',
                notes           TEXT    NOT NULL DEFAULT '',
                is_active       INTEGER NOT NULL DEFAULT 1
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS intermittent_fasting (
                id                INTEGER PRIMARY KEY AUTOINCREMENT,
                patient_id        INTEGER NOT NULL REFERENCES patients(id),
                start_time        TEXT    NOT NULL,
                end_time          TEXT    NOT NULL,
                duration          INTEGER NOT NULL,
                allowed_drinks    TEXT    NOT NULL DEFAULT '[]',
                breakfast_options TEXT    NOT NULL DEFAULT '[]',
                is_active         INTEGER NOT NULL DEFAULT 1,
                created_at        TEXT    NOT NULL
            )
        """)
        # Server-side sessions, keyed by the cookie value
        conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                sid         TEXT    PRIMARY KEY,
                kind        TEXT    NOT NULL CHECK (kind IN ('patient', 'professional', 'user')),
                subject_id  TEXT    NOT NULL,
                fingerprint TEXT    NOT NULL DEFAULT '',
                created_at  INTEGER NOT NULL,
                expires_at  INTEGER NOT NULL
            )
        """)
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_professionals_user_id"
            " ON professionals(user_id) WHERE user_id IS NOT NULL"
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_patients_professional_id ON patients(professional_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_patients_user_id ON patients(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_weight_records_patient_id ON weight_records(patient_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_mood_entries_patient_id ON mood_entries(patient_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_meal_plans_diet_level_id ON meal_plans(diet_level_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_expires_at ON sessions(expires_at)")
        conn.execute("DELETE FROM sessions WHERE expires_at < ?", (int(time()),))
        conn.commit()


@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
