"""Tests for bearer token authentication."""

from __future__ import annotations

import unittest

from bracketeer.auth.utils import generate_auth_token
from bracketeer.core.constants import USER_BANNED
from tests.conftest import BaseTestCase


class AuthTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user = self.make_user("player")

    def test_missing_or_malformed_header(self) -> None:
        for headers in ({}, {"Authorization": "Token abc"}, {"Authorization": "Bearer "}):
            with self.subTest(headers=headers):
                response = self.client.get("/users/me", headers=headers)
                self.assertEqual(response.status_code, 401)

    def test_tampered_token(self) -> None:
        token = generate_auth_token(self.user["_id"]) + "x"
        response = self.client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["message"], "Invalid token.")

    def test_expired_token(self) -> None:
        self.app.config["AUTH_TOKEN_MAX_AGE"] = -1
        response = self.client.get("/users/me", headers=self.auth_headers(self.user))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["message"], "Token has expired.")

    def test_deleted_user(self) -> None:
        headers = self.auth_headers(self.user)
        self.db.users.delete_one({"_id": self.user["_id"]})
        response = self.client.get("/users/me", headers=headers)
        self.assertEqual(response.status_code, 401)

    def test_banned_user(self) -> None:
        self.db.users.update_one({"_id": self.user["_id"]}, {"$set": {"status": USER_BANNED}})
        response = self.client.get("/users/me", headers=self.auth_headers(self.user))
        self.assertEqual(response.status_code, 403)

    def test_role_restricted_route(self) -> None:
        response = self.client.get("/admin/stats", headers=self.auth_headers(self.user))
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
