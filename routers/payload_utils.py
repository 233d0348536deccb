"""Payload validators shared by the auth, patient and professional routers.

Each ``_validate_*`` helper returns ``(error, value)``: an error message for a
400 response, or an empty string and the cleaned value.
"""
import re

from config import (
    ACCESS_CODE_INPUT_MAX,
    ACCESS_CODE_INPUT_MIN,
    MAX_NAME_LEN,
    MAX_NOTES_LEN,
    MAX_TAG_LEN,
    MAX_TAGS,
    WEIGHT_MAX_KG,
    WEIGHT_MIN_KG,
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _as_int(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _as_float(value):
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _validate_range(value, label: str, low, high, parse=_as_float):
    number = parse(value)
    if number is None:
        return (f"{label} must be a number", None)
    if not (low <= number <= high):
        return (f"{label} must be between {low} and {high}", None)
    return ("", number)


def _validate_weight(value, label: str = "Weight"):
    return _validate_range(value, label, WEIGHT_MIN_KG, WEIGHT_MAX_KG)


def _validate_diet_level(value):
    return _validate_range(value, "Diet level", 1, 5, parse=_as_int)


def _validate_notes(value):
    if value is not None and not isinstance(value, str):
        return ("Notes must be text", None)
    notes = _as_text(value)
    if len(notes) > MAX_NOTES_LEN:
        return (f"Notes must be {MAX_NOTES_LEN} characters or fewer", None)
    return ("", notes)


def _validate_str_list(value, label: str, max_items: int = MAX_TAGS, max_len: int = MAX_TAG_LEN):
    if value is None:
        return ("", [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return (f"{label} must be a list of strings", None)
    items = [v.strip() for v in value if v.strip()]
    if len(items) > max_items:
        return (f"At most {max_items} {label.lower()} are allowed", None)
    if any(len(v) > max_len for v in items):
        return (f"Each of the {label.lower()} must be {max_len} characters or fewer", None)
    return ("", items)


def _validate_access_code_payload(payload: dict):
    code = payload.get("accessCode")
    if not isinstance(code, str):
        return ("Access code is required", None)
    code = code.strip().upper()
    if not (ACCESS_CODE_INPUT_MIN <= len(code) <= ACCESS_CODE_INPUT_MAX):
        return (
            f"Access code must be {ACCESS_CODE_INPUT_MIN} to {ACCESS_CODE_INPUT_MAX} characters",
            None,
        )
    return ("", code)


def _validate_name(value, label: str = "Name"):
    name = _as_text(value)
    if len(name) < 2:
        return (f"{label} must be at least 2 characters", None)
    if len(name) > MAX_NAME_LEN:
        return (f"{label} must be {MAX_NAME_LEN} characters or fewer", None)
    return ("", name)


def _validate_patient_payload(payload: dict):
    """Fields of a new patient, as sent by the onboarding wizard."""
    error, name = _validate_name(payload.get("name"))
    if error:
        return (error, None)
    error, age = _validate_range(payload.get("age"), "Age", 1, 120, parse=_as_int)
    if error:
        return (error, None)
    error, height = _validate_range(payload.get("height"), "Height", 50, 250)
    if error:
        return (error, None)
    error, initial_weight = _validate_weight(payload.get("initialWeight"), "Initial weight")
    if error:
        return (error, None)
    error, target_weight = _validate_weight(payload.get("targetWeight"), "Target weight")
    if error:
        return (error, None)
    error, diet_level = _validate_diet_level(payload.get("dietLevel"))
    if error:
        return (error, None)
    error, medical_notes = _validate_notes(payload.get("medicalNotes"))
    if error:
        return (error, None)
    return ("", {
        "name": name,
        "age": age,
        "height": height,
        "initial_weight": initial_weight,
        "target_weight": target_weight,
        "diet_level": diet_level,
        "medical_notes": medical_notes,
    })


def _validate_mood_payload(payload: dict):
    levels = {}
    for key, label in (("moodLevel", "Mood"), ("energyLevel", "Energy"), ("motivationLevel", "Motivation")):
        error, level = _validate_range(payload.get(key), label, 1, 5, parse=_as_int)
        if error:
            return (error, None)
        levels[key] = level
    error, notes = _validate_notes(payload.get("notes"))
    if error:
        return (error, None)
    error, tags = _validate_str_list(payload.get("tags"), "Tags")
    if error:
        return (error, None)
    return ("", {
        "mood": levels["moodLevel"],
        "energy": levels["energyLevel"],
        "motivation": levels["motivationLevel"],
        "notes": notes,
        "tags": tags,
    })


def _validate_fasting_payload(payload: dict):
    start_time = _as_text(payload.get("startTime"))
    end_time = _as_text(payload.get("endTime"))
    if not _HHMM_RE.match(start_time) or not _HHMM_RE.match(end_time):
        return ("Start and end times must be HH:MM", None)
    if start_time == end_time:
        return ("Start and end times must differ", None)
    error, duration = _validate_range(payload.get("duration"), "Duration", 1, 365, parse=_as_int)
    if error:
        return (error, None)
    error, drinks = _validate_str_list(payload.get("allowedDrinks"), "Allowed drinks", max_items=30, max_len=80)
    if error:
        return (error, None)
    error, breakfasts = _validate_str_list(
        payload.get("breakfastOptions"), "Breakfast options", max_items=30, max_len=200
    )
    if error:
        return (error, None)
    return ("", {
        "start_time": start_time,
        "end_time": end_time,
        "duration": duration,
        "allowed_drinks": drinks,
        "breakfast_options": breakfasts,
    })


def _validate_profile_payload(payload: dict):
    error, name = _validate_name(payload.get("name"))
    if error:
        return (error, None)
    email = _as_text(payload.get("email")).lower()
    if email and not _EMAIL_RE.match(email):
        return ("Invalid email address", None)
    if len(email) > 254:
        return ("Email address is too long", None)
    specialty = _as_text(payload.get("specialty"))
    if len(specialty) > MAX_NAME_LEN:
        return (f"Specialty must be {MAX_NAME_LEN} characters or fewer", None)
    return ("", {"name": name, "email": email, "specialty": specialty})
