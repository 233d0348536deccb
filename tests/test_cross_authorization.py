import sqlite3
import unittest

from harness import AppTestCase, ORIGIN, PATIENT_PAYLOAD


class RoleGuardTests(AppTestCase):
    def setUp(self):
        super().setUp()
        self.professional = self.make_professional()
        self.created = self.create_patient(self.professional)
        self.patient_headers = {**ORIGIN, "x-patient-session": self.created["accessCode"]}

    def test_anonymous_requests_are_unauthorized(self):
        fresh = self.new_client()
        for path in (
            "/api/patient/current",
            "/api/patient/weight-history",
            "/api/professional/patients",
            "/api/professional/profile",
            "/api/diet-levels",
            "/api/auth/user",
        ):
            resp = fresh.get(path)
            self.assertEqual(resp.status_code, 401, path)
            self.assertEqual(resp.json(), {"error": "unauthorized"})

    def test_patient_cannot_reach_professional_routes(self):
        fresh = self.new_client()
        listed = fresh.get("/api/professional/patients", headers=self.patient_headers)
        self.assertEqual(listed.status_code, 403)
        self.assertEqual(listed.json(), {"error": "forbidden"})
        patient_id = self.created["patient"]["id"]
        changed = fresh.patch(
            f"/api/professional/patients/{patient_id}/diet-level",
            headers=self.patient_headers,
            json={"dietLevel": 5},
        )
        self.assertEqual(changed.status_code, 403)
        created = fresh.post("/api/professional/patients", headers=self.patient_headers, json=PATIENT_PAYLOAD)
        self.assertEqual(created.status_code, 403)

    def test_professional_cannot_use_patient_routes(self):
        resp = self.client.get("/api/patient/current", headers=self.professional_headers(self.professional))
        self.assertEqual(resp.status_code, 403)
        mood = self.client.post(
            "/api/patient/mood-entries",
            headers=self.professional_headers(self.professional),
            json={"moodLevel": 3, "energyLevel": 3, "motivationLevel": 3},
        )
        self.assertEqual(mood.status_code, 403)

    def test_patient_cookie_session_cannot_reach_professional_routes(self):
        fresh = self.new_client()
        self.assertEqual(self.login_patient(self.created["accessCode"], client=fresh).status_code, 200)
        self.assertEqual(fresh.get("/api/patient/current").status_code, 200)

        listed = fresh.get("/api/professional/patients")
        self.assertEqual(listed.status_code, 403)
        self.assertEqual(listed.json(), {"error": "forbidden"})
        patient_id = self.created["patient"]["id"]
        changed = fresh.patch(
            f"/api/professional/patients/{patient_id}/diet-level",
            headers=self.csrf_headers(fresh),
            json={"dietLevel": 5},
        )
        self.assertEqual(changed.status_code, 403)

    def test_professional_cookie_session_cannot_reach_patient_routes(self):
        fresh = self.new_client()
        validated = fresh.post(
            "/api/professional/validate", headers=ORIGIN, json={"accessCode": self.professional["access_code"]}
        )
        self.assertEqual(validated.status_code, 200)
        self.assertEqual(fresh.get("/api/professional/patients").status_code, 200)

        current = fresh.get("/api/patient/current")
        self.assertEqual(current.status_code, 403)
        self.assertEqual(current.json(), {"error": "forbidden"})
        mood = fresh.post(
            "/api/patient/mood-entries",
            headers=self.csrf_headers(fresh),
            json={"moodLevel": 3, "energyLevel": 3, "motivationLevel": 3},
        )
        self.assertEqual(mood.status_code, 403)

    def test_diet_content_open_to_both_roles(self):
        fresh = self.new_client()
        self.assertEqual(fresh.get("/api/diet-levels", headers=self.patient_headers).status_code, 200)
        self.assertEqual(
            fresh.get("/api/diet-levels", headers=self.professional_headers(self.professional)).status_code, 200
        )

    def test_bad_professional_header_falls_back_to_patient_header(self):
        fresh = self.new_client()
        resp = fresh.get(
            "/api/patient/current",
            headers={"x-professional-code": "NOPE0000", "x-patient-session": self.created["accessCode"]},
        )
        self.assertEqual(resp.status_code, 200)


class RequestForgeryTests(AppTestCase):
    def setUp(self):
        super().setUp()
        self.professional = self.make_professional()
        resp = self.client.post(
            "/api/professional/validate", headers=ORIGIN, json={"accessCode": self.professional["access_code"]}
        )
        self.assertEqual(resp.status_code, 200)

    def test_cross_origin_mutations_are_rejected(self):
        for headers in ({}, {"origin": "http://evil.example"}, {"referer": "http://evil.example/form"}):
            resp = self.client.post(
                "/api/professional/patients",
                headers={**headers, "x-csrf-token": self.client.cookies.get("csrf_token")},
                json=PATIENT_PAYLOAD,
            )
            self.assertEqual(resp.status_code, 403, headers)
        validate = self.client.post("/api/patient/validate", json={"accessCode": "ABCD1234"})
        self.assertEqual(validate.status_code, 403)

    def test_referer_from_same_origin_is_accepted(self):
        resp = self.client.post(
            "/api/professional/patients",
            headers={"referer": "http://testserver/dashboard", "x-csrf-token": self.client.cookies.get("csrf_token")},
            json=PATIENT_PAYLOAD,
        )
        self.assertEqual(resp.status_code, 200)

    def test_cookie_session_needs_matching_csrf_header(self):
        missing = self.client.post("/api/professional/patients", headers=ORIGIN, json=PATIENT_PAYLOAD)
        self.assertEqual(missing.status_code, 403)
        wrong = self.client.post(
            "/api/professional/patients", headers={**ORIGIN, "x-csrf-token": "guess"}, json=PATIENT_PAYLOAD
        )
        self.assertEqual(wrong.status_code, 403)
        with sqlite3.connect(self.db_path) as conn:
            self.assertEqual(conn.execute("SELECT COUNT(*) FROM patients").fetchone()[0], 0)

        ok = self.client.post("/api/professional/patients", headers=self.csrf_headers(), json=PATIENT_PAYLOAD)
        self.assertEqual(ok.status_code, 200)

    def test_reads_do_not_need_csrf(self):
        self.assertEqual(self.client.get("/api/professional/patients").status_code, 200)

    def test_health_is_public(self):
        self.assertEqual(self.new_client().get("/health").json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
