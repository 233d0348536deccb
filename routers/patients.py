from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

import storage
from principal import Principal, require_patient
from routers.payload_utils import _validate_mood_payload
from serializers import (
    diet_level_public,
    fasting_public,
    meal_plan_public,
    mood_public,
    patient_public,
    weight_public,
)

router = APIRouter()


@router.get("/api/patient/current")
def patient_current(principal: Principal = Depends(require_patient)):
    # Always the stored row, so professional edits show up mid-session.
    patient = storage.get_patient(principal.subject_id)
    if not patient:
        return JSONResponse({"ok": False, "error": "Patient not found"}, status_code=404)
    return JSONResponse({"patient": patient_public(patient)})


@router.get("/api/patient/weight-history")
def patient_weight_history(principal: Principal = Depends(require_patient)):
    records = storage.weight_history(principal.subject_id)
    return JSONResponse([weight_public(r) for r in records])


@router.get("/api/patient/mood-entries")
def patient_mood_entries(limit: int = 100, principal: Principal = Depends(require_patient)):
    limit = max(1, min(limit, 500))
    entries = storage.list_mood_entries(principal.subject_id, limit)
    return JSONResponse([mood_public(e) for e in entries])


@router.post("/api/patient/mood-entries")
def patient_mood_create(payload: dict = Body(...), principal: Principal = Depends(require_patient)):
    error, fields = _validate_mood_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    entry = storage.add_mood_entry(principal.subject_id, **fields)
    return JSONResponse({"ok": True, "entry": mood_public(entry)})


@router.get("/api/patient/diet-plan")
def patient_diet_plan(principal: Principal = Depends(require_patient)):
    patient = storage.get_patient(principal.subject_id)
    levels = []
    for level in storage.get_diet_levels(level=patient["diet_level"]):
        item = diet_level_public(level)
        item["mealPlans"] = [meal_plan_public(m) for m in storage.get_meal_plans_by_diet_level(level["id"])]
        levels.append(item)
    return JSONResponse({"dietLevel": patient["diet_level"], "levels": levels})


@router.get("/api/intermittent-fasting")
def patient_fasting(principal: Principal = Depends(require_patient)):
    program = storage.get_fasting_program(principal.subject_id)
    return JSONResponse(fasting_public(program) if program else None)
