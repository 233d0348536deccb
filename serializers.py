"""camelCase API shapes for storage rows."""
from access_codes import code_status
from config import _to_iso


def patient_public(row: dict) -> dict:
    """What a patient sees about themselves."""
    return {
        "id": row["id"],
        "name": row["name"],
        "dietLevel": row["diet_level"],
        "codeExpiry": _to_iso(row["code_expiry"]),
    }


def patient_detail(row: dict, current_weight=None) -> dict:
    """What the owning professional sees, including the live code."""
    item = patient_public(row)
    item.update({
        "userId": row["user_id"],
        "professionalId": row["professional_id"],
        "age": row["age"],
        "height": row["height"],
        "initialWeight": row["initial_weight"],
        "targetWeight": row["target_weight"],
        "currentWeight": current_weight if current_weight is not None else row.get("current_weight"),
        "medicalNotes": row["medical_notes"],
        "accessCode": row["access_code"],
        "codeStatus": code_status(row["access_code"], row["code_expiry"]),
        "isActive": bool(row["is_active"]),
        "createdAt": _to_iso(row["created_at"]),
    })
    return item


def professional_public(row: dict, include_code: bool = False) -> dict:
    item = {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "specialty": row["specialty"],
        "userId": row["user_id"],
    }
    if include_code:
        item["accessCode"] = row["access_code"]
    return item


def user_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "email": row["email"],
        "firstName": row["first_name"],
        "lastName": row["last_name"],
        "profileImageUrl": row["profile_image_url"],
    }


def weight_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "patientId": row["patient_id"],
        "weight": row["weight"],
        "notes": row["notes"],
        "recordedDate": _to_iso(row["recorded_at"]),
    }


def mood_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "patientId": row["patient_id"],
        "moodLevel": row["mood_level"],
        "energyLevel": row["energy_level"],
        "motivationLevel": row["motivation_level"],
        "notes": row["notes"],
        "tags": row["tags"],
        "createdAt": _to_iso(row["created_at"]),
    }


def diet_level_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "category": row["category"],
        "level": row["level"],
        "glycemicIndex": row["glycemic_index"],
    }


def meal_plan_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "dietLevelId": row["diet_level_id"],
        "mealType": row["meal_type"],
        "optionNumber": row["option_number"],
        "title": row["title"],
        "description": row["description"],
        "beverages": row["beverages"],
        "allowedBreads": row["allowed_breads"],
        "proteins": row["proteins"],
        "fruits": row["fruits"],
        "vegetables": row["vegetables"],
        "cereals": row["cereals"],
        "others": row["others"],
    }


def recipe_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "mealPlanId": row["meal_plan_id"],
        "name": row["name"],
        "description": row["description"],
        "ingredients": row["ingredients"],
        "instructions": row["instructions"],
        "preparationTime": row["preparation_time"],
        "category": row["category"],
    }


def food_item_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "category": row["category"],
        "allowedInDiet": row["allowed_in_diet"],
        "quantity": row["quantity"],
        "notes": row["notes"],
    }


def fasting_public(row: dict) -> dict:
    return {
        "id": row["id"],
        "patientId": row["patient_id"],
        "startTime": row["start_time"],
        "endTime": row["end_time"],
        "duration": row["duration"],
        "allowedDrinks": row["allowed_drinks"],
        "breakfastOptions": row["breakfast_options"],
        "createdAt": _to_iso(row["created_at"]),
    }
