import importlib
import sys
import tempfile
import unittest

from fastapi.testclient import TestClient

ORIGIN = {"origin": "http://testserver"}

PATIENT_PAYLOAD = {
    "name": "Ana Lopez",
    "age": 42,
    "height": 165,
    "initialWeight": 80,
    "targetWeight": 70,
    "dietLevel": 2,
    "medicalNotes": "Type 2 diabetes",
}


class AppTestCase(unittest.TestCase):
    """Fresh database and app per test, the same way the server boots."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = f"{self.tmp.name}/test.db"

        import config
        import db
        import security

        self._config = config
        self._db = db
        self._old_config_db_path = config.DB_PATH
        self._old_db_db_path = db.DB_PATH

        config.DB_PATH = self.db_path
        db.DB_PATH = self.db_path
        security._reset_rate_limits()

        sys.modules.pop("main", None)
        main = importlib.import_module("main")
        self.client = TestClient(main.app)

    def tearDown(self):
        self.client.close()
        self._config.DB_PATH = self._old_config_db_path
        self._db.DB_PATH = self._old_db_db_path
        sys.modules.pop("main", None)
        self.tmp.cleanup()

    # -- helpers ------------------------------------------------------------

    def new_client(self) -> TestClient:
        import main

        client = TestClient(main.app)
        self.addCleanup(client.close)
        return client

    def make_professional(self, name="Dr. Garcia"):
        import storage

        return storage.create_professional(name, "garcia@example.com", "Nutrition")

    def professional_headers(self, professional) -> dict:
        return {**ORIGIN, "x-professional-code": professional["access_code"]}

    def create_patient(self, professional, **overrides) -> dict:
        payload = {**PATIENT_PAYLOAD, **overrides}
        resp = self.client.post(
            "/api/professional/patients",
            headers=self.professional_headers(professional),
            json=payload,
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

    def login_patient(self, code: str, client=None):
        client = client or self.client
        return client.post("/api/patient/validate", headers=ORIGIN, json={"accessCode": code})

    def csrf_headers(self, client=None) -> dict:
        client = client or self.client
        csrf = client.cookies.get("csrf_token")
        self.assertTrue(csrf)
        return {**ORIGIN, "x-csrf-token": csrf}
