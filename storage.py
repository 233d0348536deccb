"""Repository functions over the sqlite schema.

Each function opens its own connection through ``get_db()`` and returns plain
dicts (JSON list columns already decoded) or ``None``.
"""
import json
import logging

from access_codes import issue_access_code, new_code_expiry, revoke_access_code, with_unique_code
from config import ROTATE_CODE_ON_WEIGHT, _now_utc, _to_storage
from db import get_db

logger = logging.getLogger(__name__)

_MEAL_PLAN_LISTS = ("beverages", "allowed_breads", "proteins", "fruits", "vegetables", "cereals", "others")


def _row(row, json_cols=()):
    if row is None:
        return None
    item = dict(row)
    for col in json_cols:
        try:
            item[col] = json.loads(item.get(col) or "[]")
        except ValueError:
            item[col] = []
    return item


# ---------------------------------------------------------------------------
# OAuth users
# ---------------------------------------------------------------------------

def upsert_user(user_id: str, email: str, first_name: str, last_name: str, profile_image_url: str) -> dict:
    now = _to_storage(_now_utc())
    with get_db() as conn:
        conn.execute(
            "INSERT INTO users (id, email, first_name, last_name, profile_image_url, created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET email = excluded.email, first_name = excluded.first_name,"
            " last_name = excluded.last_name, profile_image_url = excluded.profile_image_url,"
            " updated_at = excluded.updated_at",
            (user_id, email or None, first_name, last_name, profile_image_url, now, now),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row(row)


def get_user(user_id: str):
    with get_db() as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row(row)


# ---------------------------------------------------------------------------
# Professionals
# ---------------------------------------------------------------------------

def create_professional(name: str, email: str = "", specialty: str = "", user_id=None) -> dict:
    now = _to_storage(_now_utc())
    with get_db() as conn:
        _, cur = with_unique_code(
            lambda c: conn.execute(
                "INSERT INTO professionals (name, email, specialty, access_code, user_id, is_active, created_at)"
                " VALUES (?, ?, ?, ?, ?, 1, ?)",
                (name, email, specialty, c, user_id, now),
            )
        )
        conn.commit()
        row = conn.execute("SELECT * FROM professionals WHERE id = ?", (cur.lastrowid,)).fetchone()
    logger.info("Created professional %s", row["id"])
    return _row(row)


def get_professional(professional_id):
    with get_db() as conn:
        row = conn.execute("SELECT * FROM professionals WHERE id = ?", (professional_id,)).fetchone()
    return _row(row)


def get_professional_by_code(access_code: str):
    with get_db() as conn:
        row = conn.execute("SELECT * FROM professionals WHERE access_code = ?", (access_code,)).fetchone()
    return _row(row)


def get_professional_by_user(user_id: str):
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM professionals WHERE user_id = ? AND is_active = 1", (user_id,)
        ).fetchone()
    return _row(row)


def update_professional(professional_id: int, name: str, email: str, specialty: str) -> dict:
    with get_db() as conn:
        conn.execute(
            "UPDATE professionals SET name = ?, email = ?, specialty = ? WHERE id = ?",
            (name, email, specialty, professional_id),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM professionals WHERE id = ?", (professional_id,)).fetchone()
    return _row(row)


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

def create_patient(
    professional_id: int,
    name: str,
    age: int,
    height: float,
    initial_weight: float,
    target_weight: float,
    diet_level: int,
    medical_notes: str = "",
) -> dict:
    """Insert a patient with a fresh code and log the initial weight."""
    now = _to_storage(_now_utc())
    expiry = new_code_expiry()
    with get_db() as conn:
        _, cur = with_unique_code(
            lambda c: conn.execute(
                "INSERT INTO patients (name, age, height, initial_weight, target_weight, access_code,"
                " code_expiry, diet_level, is_active, created_at, professional_id, medical_notes)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?)",
                (name, age, height, initial_weight, target_weight, c, expiry, diet_level, now,
                 professional_id, medical_notes),
            )
        )
        patient_id = cur.lastrowid
        conn.execute(
            "INSERT INTO weight_records (patient_id, weight, notes, recorded_at, recorded_by)"
            " VALUES (?, ?, 'Initial weight', ?, ?)",
            (patient_id, initial_weight, now, professional_id),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    logger.info("Professional %s created patient %s", professional_id, patient_id)
    return _row(row)


def get_patient(patient_id):
    with get_db() as conn:
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    return _row(row)


def find_patient_by_code(access_code: str):
    """Return the patient holding this code regardless of state; callers judge validity."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM patients WHERE access_code = ?", (access_code,)).fetchone()
    return _row(row)


def get_patient_by_user(user_id: str):
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM patients WHERE user_id = ? AND is_active = 1 ORDER BY id DESC LIMIT 1",
            (user_id,),
        ).fetchone()
    return _row(row)


def get_owned_patient(professional_id: int, patient_id: int):
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM patients WHERE id = ? AND professional_id = ? AND is_active = 1",
            (patient_id, professional_id),
        ).fetchone()
    return _row(row)


def list_patients(professional_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute(
            """SELECT p.*,
                      (SELECT w.weight FROM weight_records w WHERE w.patient_id = p.id
                       ORDER BY w.recorded_at DESC, w.id DESC LIMIT 1) AS current_weight
               FROM patients p
               WHERE p.professional_id = ? AND p.is_active = 1
               ORDER BY p.name""",
            (professional_id,),
        ).fetchall()
    return [_row(r) for r in rows]


def current_weight(patient_id: int):
    with get_db() as conn:
        row = conn.execute(
            "SELECT weight FROM weight_records WHERE patient_id = ? ORDER BY recorded_at DESC, id DESC LIMIT 1",
            (patient_id,),
        ).fetchone()
    return row["weight"] if row else None


def update_patient_diet_level(patient_id: int, diet_level: int):
    with get_db() as conn:
        conn.execute("UPDATE patients SET diet_level = ? WHERE id = ?", (diet_level, patient_id))
        conn.commit()


def update_patient_target_weight(patient_id: int, target_weight: float):
    with get_db() as conn:
        conn.execute("UPDATE patients SET target_weight = ? WHERE id = ?", (target_weight, patient_id))
        conn.commit()


def add_weight_record(patient_id: int, weight: float, notes: str, professional_id: int):
    """Append a weight record and, by policy, rotate the patient's code.

    Returns ``(record, patient)`` where ``patient`` reflects the new code.
    """
    now = _to_storage(_now_utc())
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO weight_records (patient_id, weight, notes, recorded_at, recorded_by)"
            " VALUES (?, ?, ?, ?, ?)",
            (patient_id, weight, notes, now, professional_id),
        )
        if ROTATE_CODE_ON_WEIGHT:
            issue_access_code(conn, patient_id)
        conn.commit()
        record = conn.execute("SELECT * FROM weight_records WHERE id = ?", (cur.lastrowid,)).fetchone()
        patient = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    return _row(record), _row(patient)


def weight_history(patient_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM weight_records WHERE patient_id = ? ORDER BY recorded_at ASC, id ASC",
            (patient_id,),
        ).fetchall()
    return [_row(r) for r in rows]


def revoke_patient_code(patient_id: int) -> dict:
    with get_db() as conn:
        revoke_access_code(conn, patient_id)
        conn.commit()
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    return _row(row)


def regenerate_patient_code(patient_id: int) -> dict:
    with get_db() as conn:
        issue_access_code(conn, patient_id)
        conn.commit()
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    return _row(row)


def deactivate_patient(patient_id: int):
    with get_db() as conn:
        conn.execute("UPDATE patients SET is_active = 0 WHERE id = ?", (patient_id,))
        conn.commit()
    logger.info("Deactivated patient %s", patient_id)


# ---------------------------------------------------------------------------
# Mood entries
# ---------------------------------------------------------------------------

def add_mood_entry(patient_id: int, mood: int, energy: int, motivation: int, notes: str, tags: list) -> dict:
    now = _to_storage(_now_utc())
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO mood_entries (patient_id, mood_level, energy_level, motivation_level, notes, tags, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (patient_id, mood, energy, motivation, notes, json.dumps(tags), now),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM mood_entries WHERE id = ?", (cur.lastrowid,)).fetchone()
    return _row(row, ("tags",))


def list_mood_entries(patient_id: int, limit: int = 100) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM mood_entries WHERE patient_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (patient_id, limit),
        ).fetchall()
    return [_row(r, ("tags",)) for r in rows]


# ---------------------------------------------------------------------------
# Diet content
# ---------------------------------------------------------------------------

def get_diet_levels(level=None) -> list:
    query = "SELECT * FROM diet_levels WHERE is_active = 1"
    params = ()
    if level is not None:
        query += " AND level = ?"
        params = (level,)
    with get_db() as conn:
        rows = conn.execute(query + " ORDER BY level, id", params).fetchall()
    return [_row(r) for r in rows]


def get_meal_plans_by_diet_level(diet_level_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM meal_plans WHERE diet_level_id = ? AND is_active = 1 ORDER BY meal_type, option_number",
            (diet_level_id,),
        ).fetchall()
    return [_row(r, _MEAL_PLAN_LISTS) for r in rows]


def get_recipes_by_meal_plan(meal_plan_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM recipes WHERE meal_plan_id = ? AND is_active = 1 ORDER BY name",
            (meal_plan_id,),
        ).fetchall()
    return [_row(r, ("ingredients", "instructions")) for r in rows]


def get_food_items_by_category(category: str) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM food_items WHERE category = ? AND is_active = 1 ORDER BY name",
            (category,),
        ).fetchall()
    return [_row(r, ("allowed_in_diet",)) for r in rows]


# ---------------------------------------------------------------------------
# Intermittent fasting
# ---------------------------------------------------------------------------

def get_fasting_program(patient_id: int):
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM intermittent_fasting WHERE patient_id = ? AND is_active = 1"
            " ORDER BY created_at DESC, id DESC LIMIT 1",
            (patient_id,),
        ).fetchone()
    return _row(row, ("allowed_drinks", "breakfast_options"))


def create_fasting_program(
    patient_id: int, start_time: str, end_time: str, duration: int, allowed_drinks: list, breakfast_options: list
) -> dict:
    now = _to_storage(_now_utc())
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO intermittent_fasting (patient_id, start_time, end_time, duration, allowed_drinks,"
            " breakfast_options, is_active, created_at) VALUES (?, ?, ?, ?, ?, ?, 1, ?)",
            (patient_id, start_time, end_time, duration, json.dumps(allowed_drinks),
             json.dumps(breakfast_options), now),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM intermittent_fasting WHERE id = ?", (cur.lastrowid,)).fetchone()
    return _row(row, ("allowed_drinks", "breakfast_options"))
