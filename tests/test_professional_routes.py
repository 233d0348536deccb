import sqlite3
import unittest

from harness import AppTestCase, ORIGIN, PATIENT_PAYLOAD


class ProfessionalSessionTests(AppTestCase):
    def test_validate_opens_cookie_session(self):
        professional = self.make_professional()
        resp = self.client.post(
            "/api/professional/validate", headers=ORIGIN, json={"accessCode": professional["access_code"]}
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["professional"]["id"], professional["id"])
        self.assertEqual(body["professional"]["accessCode"], professional["access_code"])

        session = self.client.get("/api/session").json()
        self.assertEqual(session["kind"], "professional")
        self.assertNotIn("accessCode", session["professional"])

        created = self.client.post("/api/professional/patients", headers=self.csrf_headers(), json=PATIENT_PAYLOAD)
        self.assertEqual(created.status_code, 200)

    def test_unknown_professional_code(self):
        resp = self.client.post("/api/professional/validate", headers=ORIGIN, json={"accessCode": "NOPE0000"})
        self.assertEqual(resp.status_code, 404)

    def test_inactive_professional_is_rejected_everywhere(self):
        professional = self.make_professional()
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("UPDATE professionals SET is_active = 0 WHERE id = ?", (professional["id"],))
            conn.commit()
        resp = self.client.post(
            "/api/professional/validate", headers=ORIGIN, json={"accessCode": professional["access_code"]}
        )
        self.assertEqual(resp.status_code, 404)
        listed = self.client.get("/api/professional/patients", headers=self.professional_headers(professional))
        self.assertEqual(listed.status_code, 401)

    def test_profile_read_and_update(self):
        professional = self.make_professional()
        headers = self.professional_headers(professional)
        profile = self.client.get("/api/professional/profile", headers=headers)
        self.assertEqual(profile.json()["name"], "Dr. Garcia")

        bad = self.client.patch("/api/professional/profile", headers=headers, json={"name": "Dr. G", "email": "nope"})
        self.assertEqual(bad.status_code, 400)

        updated = self.client.patch(
            "/api/professional/profile",
            headers=headers,
            json={"name": "Dr. Maria Garcia", "email": "Maria@Example.com", "specialty": "Endocrinology"},
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["professional"]["email"], "maria@example.com")
        self.assertEqual(updated.json()["professional"]["specialty"], "Endocrinology")


class PatientManagementTests(AppTestCase):
    def setUp(self):
        super().setUp()
        self.professional = self.make_professional()
        self.headers = self.professional_headers(self.professional)

    def test_create_list_and_detail(self):
        created = self.create_patient(self.professional)
        patient = created["patient"]
        self.assertEqual(patient["dietLevel"], 2)
        self.assertEqual(patient["initialWeight"], 80)
        self.assertEqual(patient["targetWeight"], 70)
        self.assertEqual(patient["currentWeight"], 80)
        self.assertEqual(patient["professionalId"], self.professional["id"])
        self.assertEqual(patient["medicalNotes"], "Type 2 diabetes")

        listed = self.client.get("/api/professional/patients", headers=self.headers)
        self.assertEqual(listed.status_code, 200)
        self.assertEqual([p["id"] for p in listed.json()], [patient["id"]])
        self.assertEqual(listed.json()[0]["currentWeight"], 80)

        detail = self.client.get(f"/api/professional/patients/{patient['id']}", headers=self.headers)
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["accessCode"], created["accessCode"])

        history = self.client.get(f"/api/professional/patients/{patient['id']}/weight-history", headers=self.headers)
        self.assertEqual([(r["weight"], r["notes"]) for r in history.json()], [(80, "Initial weight")])

    def test_create_rejects_invalid_fields(self):
        cases = [
            {"dietLevel": 7},
            {"dietLevel": "two"},
            {"name": "A"},
            {"initialWeight": 10},
            {"targetWeight": None},
            {"age": 0},
        ]
        for override in cases:
            resp = self.client.post(
                "/api/professional/patients", headers=self.headers, json={**PATIENT_PAYLOAD, **override}
            )
            self.assertEqual(resp.status_code, 400, override)
            self.assertFalse(resp.json()["ok"])
        listed = self.client.get("/api/professional/patients", headers=self.headers)
        self.assertEqual(listed.json(), [])

    def test_other_professionals_patients_are_not_found(self):
        created = self.create_patient(self.professional)
        patient_id = created["patient"]["id"]
        other = self.professional_headers(self.make_professional("Dr. Other"))

        self.assertEqual(self.client.get("/api/professional/patients", headers=other).json(), [])
        for method, path, payload in (
            ("get", f"/api/professional/patients/{patient_id}", None),
            ("patch", f"/api/professional/patients/{patient_id}/diet-level", {"dietLevel": 3}),
            ("post", f"/api/professional/patients/{patient_id}/weight", {"weight": 75}),
            ("post", f"/api/professional/patients/{patient_id}/revoke-code", None),
            ("delete", f"/api/professional/patients/{patient_id}", None),
        ):
            kwargs = {"headers": other}
            if payload is not None:
                kwargs["json"] = payload
            resp = getattr(self.client, method)(path, **kwargs)
            self.assertEqual(resp.status_code, 404, path)
        self.assertEqual(self.login_patient(created["accessCode"]).status_code, 200)

    def test_diet_level_and_target_weight_validation(self):
        patient_id = self.create_patient(self.professional)["patient"]["id"]
        bad_level = self.client.patch(
            f"/api/professional/patients/{patient_id}/diet-level", headers=self.headers, json={"dietLevel": 0}
        )
        self.assertEqual(bad_level.status_code, 400)
        bad_weight = self.client.post(
            f"/api/professional/patients/{patient_id}/weight", headers=self.headers, json={"weight": "heavy"}
        )
        self.assertEqual(bad_weight.status_code, 400)

        target = self.client.patch(
            f"/api/professional/patients/{patient_id}/target-weight", headers=self.headers, json={"targetWeight": 68.5}
        )
        self.assertEqual(target.status_code, 200)
        detail = self.client.get(f"/api/professional/patients/{patient_id}", headers=self.headers).json()
        self.assertEqual(detail["targetWeight"], 68.5)

    def test_deactivated_patient_disappears_from_list(self):
        patient_id = self.create_patient(self.professional)["patient"]["id"]
        self.assertEqual(self.client.delete(f"/api/professional/patients/{patient_id}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.get("/api/professional/patients", headers=self.headers).json(), [])
        self.assertEqual(self.client.get(f"/api/professional/patients/{patient_id}", headers=self.headers).status_code, 404)

    def test_fasting_program_assignment(self):
        created = self.create_patient(self.professional)
        patient_id = created["patient"]["id"]

        bad = self.client.post(
            f"/api/professional/patients/{patient_id}/fasting",
            headers=self.headers,
            json={"startTime": "25:00", "endTime": "08:00", "duration": 14},
        )
        self.assertEqual(bad.status_code, 400)

        assigned = self.client.post(
            f"/api/professional/patients/{patient_id}/fasting",
            headers=self.headers,
            json={
                "startTime": "20:00",
                "endTime": "12:00",
                "duration": 14,
                "allowedDrinks": ["Water", "Black coffee"],
                "breakfastOptions": ["Eggs with spinach"],
            },
        )
        self.assertEqual(assigned.status_code, 200)
        self.assertEqual(assigned.json()["program"]["allowedDrinks"], ["Water", "Black coffee"])

        fresh = self.new_client()
        program = fresh.get("/api/intermittent-fasting", headers={"x-patient-session": created["accessCode"]})
        self.assertEqual(program.status_code, 200)
        self.assertEqual(program.json()["startTime"], "20:00")
        self.assertEqual(program.json()["duration"], 14)

    def test_patient_without_fasting_program_gets_null(self):
        created = self.create_patient(self.professional)
        fresh = self.new_client()
        resp = fresh.get("/api/intermittent-fasting", headers={"x-patient-session": created["accessCode"]})
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json())


if __name__ == "__main__":
    unittest.main()
