"""Tests for user accounts."""

from __future__ import annotations

import unittest

from bracketeer.errors import DuplicateResourceError, ValidationError
from bracketeer.users.services import UserService
from tests.conftest import BaseTestCase


class UserServiceTestCase(BaseTestCase):
    def test_create_user_defaults(self) -> None:
        user = UserService.create_user("Newbie", "NEWBIE@Example.com")

        self.assertEqual(user["email"], "newbie@example.com")
        self.assertEqual(user["walletBalance"], 0)
        self.assertEqual(user["eloRating"], [])
        with self.assertRaises(DuplicateResourceError):
            UserService.create_user("Newbie")

    def test_update_rejects_taken_email(self) -> None:
        self.make_user("alice")
        bob = self.make_user("bob")
        with self.assertRaises(ValidationError):
            UserService.update_user(bob["_id"], {"email": "ALICE@example.com"})

    def test_captain_of_shared_team_cannot_be_deleted(self) -> None:
        captain = self.make_user("captain")
        self.make_team(captain, [self.make_user("mate")])
        with self.assertRaises(ValidationError):
            UserService.delete_user(captain["_id"])
        self.assertIsNotNone(self.db.users.find_one({"_id": captain["_id"]}))

    def test_delete_cleans_up(self) -> None:
        solo = self.make_user("solo")
        captain = self.make_user("captain")
        solo_team = self.make_team(solo, name="Lone Wolf", tag="WOLF")
        shared = self.make_team(captain, [solo], name="Pack", tag="PACK")
        tournament = self.make_tournament(self.make_admin())
        self.make_registration(tournament, solo)
        self.redis.set(f"team:{shared['_id']}", "cached")

        UserService.delete_user(solo["_id"])

        self.assertIsNone(self.db.users.find_one({"_id": solo["_id"]}))
        self.assertIsNone(self.db.teams.find_one({"_id": solo_team["_id"]}))
        self.assertEqual(
            self.db.teams.find_one({"_id": shared["_id"]})["members"], [captain["_id"]]
        )
        self.assertEqual(self.db.registrations.count_documents({}), 0)
        self.assertIsNone(self.redis.get(f"team:{shared['_id']}"))


class UserRoutesTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin = self.make_admin()
        self.user = self.make_user("player")

    def test_me(self) -> None:
        response = self.client.get("/users/me", headers=self.auth_headers(self.user))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["username"], "player")

    def test_public_profile_hides_private_fields(self) -> None:
        response = self.client.get(
            f"/users/{self.user['_id']}", headers=self.auth_headers(self.admin)
        )
        data = response.get_json()
        self.assertNotIn("email", data)
        self.assertNotIn("walletBalance", data)

    def test_admin_changes_role(self) -> None:
        response = self.client.patch(
            f"/users/{self.user['_id']}",
            json={"role": "tournament_manager"},
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["role"], "tournament_manager")

        response = self.client.patch(
            f"/users/{self.user['_id']}",
            json={"role": "emperor"},
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 400)

    def test_users_cannot_delete_others(self) -> None:
        other = self.make_user("other")
        response = self.client.delete(
            f"/users/{other['_id']}", headers=self.auth_headers(self.user)
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(
            f"/users/{self.user['_id']}", headers=self.auth_headers(self.user)
        )
        self.assertEqual(response.status_code, 204)


if __name__ == "__main__":
    unittest.main()
