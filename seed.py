"""
Seed script: populates diet content and a demo professional.

- Safe to re-run: diet content is replaced, the demo professional is reused.
- Does NOT touch patients, weight records or mood entries.

Usage:
    python3 seed.py
"""

import json
import sqlite3

import db
import storage

DEMO_PROFESSIONAL = "Dr. Demo Nutritionist"

# (level, name, glycemic index, description)
LEVELS = [
    (1, "Level 1: Strict", "low", "Low glycemic load, no refined flour or added sugar."),
    (2, "Level 2: Controlled", "low", "Adds whole-grain bread and one fruit per meal."),
    (3, "Level 3: Moderate", "intermediate", "Adds legumes and starchy vegetables in small portions."),
    (4, "Level 4: Flexible", "intermediate", "Adds cereals and dairy desserts twice a week."),
    (5, "Level 5: Maintenance", "high", "Balanced plate with free choice inside portion limits."),
]

CATEGORIES = ["breakfast", "snack", "lunch", "dinner"]

MEALS = {
    "breakfast": {
        "title": "Breakfast option",
        "beverages": ["Black coffee", "Green tea", "Water"],
        "allowed_breads": ["Whole-grain toast"],
        "proteins": ["2 eggs", "Cottage cheese"],
        "fruits": ["Berries"],
        "vegetables": ["Spinach", "Tomato"],
        "cereals": ["Oats"],
        "others": ["Avocado slice"],
    },
    "snack": {
        "title": "Snack option",
        "beverages": ["Water"],
        "allowed_breads": [],
        "proteins": ["Greek yogurt", "Almonds x10"],
        "fruits": ["Apple"],
        "vegetables": ["Carrot sticks"],
        "cereals": [],
        "others": [],
    },
    "lunch": {
        "title": "Lunch option",
        "beverages": ["Water", "Unsweetened iced tea"],
        "allowed_breads": ["Corn tortilla x2"],
        "proteins": ["Grilled chicken breast", "Fish fillet"],
        "fruits": [],
        "vegetables": ["Mixed salad", "Steamed broccoli"],
        "cereals": ["Brown rice 1/2 cup"],
        "others": ["Olive oil 1 tsp"],
    },
    "dinner": {
        "title": "Dinner option",
        "beverages": ["Herbal tea"],
        "allowed_breads": [],
        "proteins": ["Turkey breast", "Tofu"],
        "fruits": [],
        "vegetables": ["Zucchini", "Green beans"],
        "cereals": [],
        "others": [],
    },
}

FOOD_ITEMS = [
    # (name, category, allowed diet levels, quantity)
    ("Oats", "cereals", [1, 2, 3, 4, 5], "1/2 cup"),
    ("Brown rice", "cereals", [3, 4, 5], "1/2 cup"),
    ("Whole-grain bread", "breads", [2, 3, 4, 5], "1 slice"),
    ("Apple", "fruits", [2, 3, 4, 5], "1 medium"),
    ("Berries", "fruits", [1, 2, 3, 4, 5], "1 cup"),
    ("Chicken breast", "proteins", [1, 2, 3, 4, 5], "120 g"),
    ("Eggs", "proteins", [1, 2, 3, 4, 5], "x2"),
    ("Spinach", "vegetables", [1, 2, 3, 4, 5], "free"),
    ("Black coffee", "beverages", [1, 2, 3, 4, 5], "1 cup"),
]


def seed_diet_content(conn) -> int:
    """Replace diet levels, meal plans, recipes and food items. Returns plans inserted."""
    for tbl in ["recipes", "meal_plans", "diet_levels", "food_items"]:
        conn.execute(f"DELETE FROM {tbl}")
    plans = 0
    for level, name, glycemic, description in LEVELS:
        for category in CATEGORIES:
            cur = conn.execute(
                "INSERT INTO diet_levels (name, description, category, level, glycemic_index, is_active)"
                " VALUES (?, ?, ?, ?, ?, 1)",
                (name, description, category, level, glycemic),
            )
            meal = MEALS[category]
            plan = conn.execute(
                "INSERT INTO meal_plans (diet_level_id, meal_type, option_number, title, description,"
                " beverages, allowed_breads, proteins, fruits, vegetables, cereals, others, is_active)"
                " VALUES (?, ?, 1, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)",
                (
                    cur.lastrowid, category, f"{meal['title']} (level {level})", description,
                    json.dumps(meal["beverages"]),
                    json.dumps(meal["allowed_breads"] if level > 1 else []),
                    json.dumps(meal["proteins"]), json.dumps(meal["fruits"] if level > 1 else []),
                    json.dumps(meal["vegetables"]), json.dumps(meal["cereals"] if level > 2 else []),
                    json.dumps(meal["others"]),
                ),
            )
            plans += 1
            conn.execute(
                "INSERT INTO recipes (meal_plan_id, name, description, ingredients, instructions,"
                " preparation_time, category, is_active) VALUES (?, ?, ?, ?, ?, ?, ?, 1)",
                (
                    plan.lastrowid, f"Simple {category}", f"A quick {category} for level {level}.",
                    json.dumps(meal["proteins"] + meal["vegetables"]),
                    json.dumps(["Prepare the protein", "Steam or chop the vegetables", "Serve"]),
                    15, category,
                ),
            )
    for name, category, levels, quantity in FOOD_ITEMS:
        conn.execute(
            "INSERT INTO food_items (name, category, allowed_in_diet, quantity, notes, is_active)"
            " VALUES (?, ?, ?, ?, '', 1)",
            (name, category, json.dumps(levels), quantity),
        )
    return plans


def ensure_demo_professional() -> dict:
    with db.get_db() as conn:
        row = conn.execute("SELECT id FROM professionals WHERE name = ?", (DEMO_PROFESSIONAL,)).fetchone()
    if row:
        return storage.get_professional(row["id"])
    return storage.create_professional(DEMO_PROFESSIONAL, "demo@example.com", "Clinical nutrition")


if __name__ == "__main__":
    db.init_db()
    with sqlite3.connect(db.DB_PATH) as conn:
        inserted = seed_diet_content(conn)
        conn.commit()
    print(f"Inserted {len(LEVELS)} diet levels with {inserted} meal plans.")
    professional = ensure_demo_professional()
    print(f"\nDone. Professional access code: {professional['access_code']}")
