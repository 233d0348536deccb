import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

import storage
from principal import Principal, require_professional
from routers.payload_utils import (
    _validate_diet_level,
    _validate_fasting_payload,
    _validate_notes,
    _validate_patient_payload,
    _validate_profile_payload,
    _validate_weight,
)
from serializers import (
    fasting_public,
    mood_public,
    patient_detail,
    professional_public,
    weight_public,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/professional")

_NOT_FOUND = {"ok": False, "error": "Patient not found"}


def _owned_patient(principal: Principal, patient_id: int):
    """The active patient if this professional owns it, else None (reported as 404)."""
    return storage.get_owned_patient(principal.subject_id, patient_id)


def _code_response(patient: dict, **extra) -> JSONResponse:
    detail = patient_detail(patient, storage.current_weight(patient["id"]))
    body = {
        "ok": True,
        "patient": detail,
        "accessCode": detail["accessCode"],
        "codeExpiry": detail["codeExpiry"],
    }
    body.update(extra)
    return JSONResponse(body)


@router.get("/profile")
def profile_get(principal: Principal = Depends(require_professional)):
    professional = storage.get_professional(principal.subject_id)
    return JSONResponse(professional_public(professional))


@router.patch("/profile")
def profile_update(payload: dict = Body(...), principal: Principal = Depends(require_professional)):
    error, fields = _validate_profile_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    professional = storage.update_professional(principal.subject_id, **fields)
    return JSONResponse({"ok": True, "professional": professional_public(professional)})


@router.get("/patients")
def patients_list(principal: Principal = Depends(require_professional)):
    return JSONResponse([patient_detail(p) for p in storage.list_patients(principal.subject_id)])


@router.post("/patients")
def patients_create(payload: dict = Body(...), principal: Principal = Depends(require_professional)):
    error, fields = _validate_patient_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    patient = storage.create_patient(principal.subject_id, **fields)
    return _code_response(patient)


@router.get("/patients/{patient_id}")
def patients_get(patient_id: int, principal: Principal = Depends(require_professional)):
    patient = _owned_patient(principal, patient_id)
    if not patient:
        return JSONResponse(_NOT_FOUND, status_code=404)
    return JSONResponse(patient_detail(patient, storage.current_weight(patient_id)))


@router.delete("/patients/{patient_id}")
def patients_deactivate(patient_id: int, principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    storage.deactivate_patient(patient_id)
    return JSONResponse({"ok": True})


@router.patch("/patients/{patient_id}/diet-level")
def patients_diet_level(patient_id: int, payload: dict = Body(...), principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    error, diet_level = _validate_diet_level(payload.get("dietLevel"))
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    storage.update_patient_diet_level(patient_id, diet_level)
    logger.info("Professional %s set diet level %s for patient %s", principal.subject_id, diet_level, patient_id)
    return JSONResponse({"ok": True, "dietLevel": diet_level})


@router.patch("/patients/{patient_id}/target-weight")
def patients_target_weight(patient_id: int, payload: dict = Body(...), principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    error, target_weight = _validate_weight(payload.get("targetWeight"), "Target weight")
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    storage.update_patient_target_weight(patient_id, target_weight)
    return JSONResponse({"ok": True, "targetWeight": target_weight})


@router.post("/patients/{patient_id}/weight")
def patients_weight_add(patient_id: int, payload: dict = Body(...), principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    error, weight = _validate_weight(payload.get("weight"))
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    error, notes = _validate_notes(payload.get("notes"))
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    record, patient = storage.add_weight_record(patient_id, weight, notes, principal.subject_id)
    return _code_response(patient, record=weight_public(record))


@router.get("/patients/{patient_id}/weight-history")
def patients_weight_history(patient_id: int, principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    return JSONResponse([weight_public(r) for r in storage.weight_history(patient_id)])


@router.get("/patients/{patient_id}/mood-entries")
def patients_mood_entries(patient_id: int, limit: int = 100, principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    limit = max(1, min(limit, 500))
    return JSONResponse([mood_public(e) for e in storage.list_mood_entries(patient_id, limit)])


@router.post("/patients/{patient_id}/revoke-code")
def patients_revoke_code(patient_id: int, principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    patient = storage.revoke_patient_code(patient_id)
    return JSONResponse({"ok": True, "patient": patient_detail(patient)})


@router.post("/patients/{patient_id}/access-code")
def patients_regenerate_code(patient_id: int, principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    return _code_response(storage.regenerate_patient_code(patient_id))


@router.post("/patients/{patient_id}/fasting")
def patients_fasting_create(patient_id: int, payload: dict = Body(...), principal: Principal = Depends(require_professional)):
    if not _owned_patient(principal, patient_id):
        return JSONResponse(_NOT_FOUND, status_code=404)
    error, fields = _validate_fasting_payload(payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    program = storage.create_fasting_program(patient_id, **fields)
    return JSONResponse({"ok": True, "program": fasting_public(program)})
