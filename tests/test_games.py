"""Tests for the game catalogue."""

from __future__ import annotations

import unittest

from tests.conftest import BaseTestCase


class GameRoutesTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin = self.make_admin()

    def test_admin_registers_game(self) -> None:
        response = self.client.post(
            "/games",
            json={
                "name": "Star Brawl 2",
                "iconUrl": "https://cdn.example.com/sb2.png",
                "platforms": ["PC"],
                "supportedModes": ["1v1", "2v2"],
            },
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 201)
        data = response.get_json()
        self.assertEqual(data["shortName"], "star-brawl-2")
        self.assertEqual(data["supportedModes"], ["1v1", "2v2"])

    def test_unknown_platform_rejected(self) -> None:
        response = self.client.post(
            "/games",
            json={"name": "X", "iconUrl": "i", "platforms": ["Toaster"], "supportedModes": ["1v1"]},
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 400)

    def test_retired_games_are_hidden(self) -> None:
        game = self.make_game()
        self.make_game("Other Game")
        response = self.client.patch(
            f"/games/{game['_id']}",
            json={"isActive": False},
            headers=self.auth_headers(self.admin),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.client.get("/games").get_json()), 1)
        self.assertEqual(len(self.client.get("/games?all=1").get_json()), 2)


if __name__ == "__main__":
    unittest.main()
