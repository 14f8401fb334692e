"""API tests for /users: merge status mapping and lookup, against an in-memory store."""

import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from accountlink.api.v1.users import _merge_error_status
from accountlink.core.database import get_db
from accountlink.main import app
from accountlink.services.merge import (
    InvalidRoleError,
    NotFoundError,
    SelfMergeError,
    TransientStoreError,
)
from sqlite_store import make_engine, make_sessionmaker, seed_user, snapshot

MERGE_URL = "/api/v1/users/merge"


class UsersApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.Session = make_sessionmaker(self.engine)
        with self.Session() as s:
            seed_user(s, 1, "Alice", role="verified", account_id=501, uploads=3)
            seed_user(s, 2, "LegacyAlice", role="moderator", account_id=502, uploads=2)
            seed_user(s, 3, "Broken", role="owner", uploads=1)
            s.commit()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.engine.dispose()


class TestMergeEndpoint(UsersApiTestCase):
    def test_merge_success(self) -> None:
        resp = self.client.post(MERGE_URL, json={"target_id": 1, "source_id": 2})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["target_id"], 1)
        self.assertEqual(body["username"], "LegacyAlice")
        self.assertEqual(body["account_id"], 502)
        self.assertEqual(body["role"], "moderator")
        self.assertEqual(body["previous_role"], "verified")
        self.assertEqual(body["uploads_transferred"], 2)

        self.assertEqual(self.client.get("/api/v1/users/2").status_code, 404)
        target = self.client.get("/api/v1/users/1").json()
        self.assertEqual(target["upload_count"], 5)

    def test_repeat_merge_is_not_found(self) -> None:
        self.client.post(MERGE_URL, json={"target_id": 1, "source_id": 2})
        resp = self.client.post(MERGE_URL, json={"target_id": 1, "source_id": 2})
        self.assertEqual(resp.status_code, 404)
        self.assertIn("Source user 2", resp.json()["detail"])

    def test_unknown_target(self) -> None:
        resp = self.client.post(MERGE_URL, json={"target_id": 77, "source_id": 2})
        self.assertEqual(resp.status_code, 404)

    def test_same_ids_rejected(self) -> None:
        before = snapshot(self.Session)
        resp = self.client.post(MERGE_URL, json={"target_id": 1, "source_id": 1})
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["detail"], "Cannot merge user 1 into itself.")
        self.assertEqual(snapshot(self.Session), before)

    def test_non_positive_ids_rejected(self) -> None:
        resp = self.client.post(MERGE_URL, json={"target_id": 0, "source_id": 2})
        self.assertEqual(resp.status_code, 422)

    def test_invalid_stored_role(self) -> None:
        before = snapshot(self.Session)
        resp = self.client.post(MERGE_URL, json={"target_id": 1, "source_id": 3})
        self.assertEqual(resp.status_code, 500)
        self.assertIn("unknown role", resp.json()["detail"])
        self.assertEqual(snapshot(self.Session), before)

    @patch("accountlink.api.v1.users.merge_users")
    def test_transient_error_asks_for_retry(self, mock_merge: MagicMock) -> None:
        mock_merge.side_effect = TransientStoreError("Store unavailable; safe to retry.")
        resp = self.client.post(MERGE_URL, json={"target_id": 1, "source_id": 2})
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.headers.get("retry-after"), "1")
        self.assertEqual(resp.json()["detail"], "Store unavailable; safe to retry.")


class TestGetUser(UsersApiTestCase):
    def test_found(self) -> None:
        resp = self.client.get("/api/v1/users/1")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"id": 1, "account_id": 501, "username": "Alice", "role": "verified", "upload_count": 3},
        )

    def test_missing(self) -> None:
        self.assertEqual(self.client.get("/api/v1/users/404").status_code, 404)


class TestMergeErrorStatus(unittest.TestCase):
    def test_mapping(self) -> None:
        self.assertEqual(_merge_error_status(SelfMergeError(1)), 422)
        self.assertEqual(_merge_error_status(NotFoundError(1, "source")), 404)
        self.assertEqual(_merge_error_status(InvalidRoleError(1, "x")), 500)
        self.assertEqual(_merge_error_status(TransientStoreError("down")), 503)


if __name__ == "__main__":
    unittest.main()
