"""Tests for the Elo rating engine."""

from __future__ import annotations

import unittest

from bson import ObjectId

from bracketeer.core.types import ParticipantRef
from bracketeer.match.elo import EloService, calculate_new_ratings, expected_score
from tests.conftest import BaseTestCase


class EloMathTestCase(unittest.TestCase):
    def test_equal_ratings_move_sixteen_points(self) -> None:
        self.assertEqual(calculate_new_ratings(1500, 1500), (1516, 1484))

    def test_underdog_win(self) -> None:
        self.assertEqual(calculate_new_ratings(1400, 1600), (1424, 1576))

    def test_new_player_beats_veteran(self) -> None:
        winner, loser = calculate_new_ratings(1000, 1500)
        self.assertEqual(winner, 1030)
        self.assertEqual(loser, 1470)

    def test_expected_scores_sum_to_one(self) -> None:
        self.assertAlmostEqual(expected_score(1200, 1350) + expected_score(1350, 1200), 1)

    def test_rating_change_is_zero_sum_within_rounding(self) -> None:
        for winner, loser in [(1500, 1500), (1000, 1800), (2100, 900), (1234, 1567)]:
            new_winner, new_loser = calculate_new_ratings(winner, loser)
            self.assertLessEqual(abs((new_winner - winner) + (new_loser - loser)), 1)


class EloServiceTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.game = self.make_game()
        self.organizer = self.make_admin()
        self.tournament = self.make_tournament(self.organizer, self.game)

    def test_updates_user_ratings_for_the_match_game(self) -> None:
        other_game = ObjectId()
        alice = self.make_user(
            "alice",
            eloRating=[
                {"game": self.game["_id"], "rating": 1500},
                {"game": other_game, "rating": 1200},
            ],
        )
        bob = self.make_user("bob", eloRating=[{"game": self.game["_id"], "rating": 1500}])
        a, b = ParticipantRef.user(alice["_id"]), ParticipantRef.user(bob["_id"])
        match = self.make_match(self.tournament, [a, b], winner=a.to_document())

        self.assertEqual(EloService.update_ratings(self.db, match), (1516, 1484))

        alice_ratings = self.db.users.find_one({"_id": alice["_id"]})["eloRating"]
        self.assertIn({"game": self.game["_id"], "rating": 1516}, alice_ratings)
        self.assertIn({"game": other_game, "rating": 1200}, alice_ratings)
        bob_ratings = self.db.users.find_one({"_id": bob["_id"]})["eloRating"]
        self.assertEqual(bob_ratings, [{"game": self.game["_id"], "rating": 1484}])

    def test_appends_rating_for_new_player(self) -> None:
        rookie = self.make_user("rookie")
        veteran = self.make_user(
            "veteran", eloRating=[{"game": self.game["_id"], "rating": 1500}]
        )
        a, b = ParticipantRef.user(rookie["_id"]), ParticipantRef.user(veteran["_id"])
        match = self.make_match(self.tournament, [a, b], winner=a.to_document())

        EloService.update_ratings(self.db, match)

        rookie_ratings = self.db.users.find_one({"_id": rookie["_id"]})["eloRating"]
        self.assertEqual(rookie_ratings, [{"game": self.game["_id"], "rating": 1030}])

    def test_updates_team_rank_points_and_counters(self) -> None:
        captain_a, captain_b = self.make_user("cap_a"), self.make_user("cap_b")
        team_a = self.make_team(
            captain_a, name="Alpha", tag="ALP", rankPoints=1600, wins=5, losses=0
        )
        team_b = self.make_team(
            captain_b, name="Bravo", tag="BRV", rankPoints=1400, wins=0, losses=2
        )
        a, b = ParticipantRef.team(team_a["_id"]), ParticipantRef.team(team_b["_id"])
        match = self.make_match(self.tournament, [a, b], winner=a.to_document())

        EloService.update_ratings(self.db, match)

        stats_a = self.db.teams.find_one({"_id": team_a["_id"]})["stats"]
        stats_b = self.db.teams.find_one({"_id": team_b["_id"]})["stats"]
        self.assertEqual((stats_a["rankPoints"], stats_a["wins"]), (1608, 6))
        self.assertEqual((stats_b["rankPoints"], stats_b["losses"]), (1392, 3))

    def test_noop_without_winner_or_opponent(self) -> None:
        alice, bob = self.make_user("alice"), self.make_user("bob")
        a, b = ParticipantRef.user(alice["_id"]), ParticipantRef.user(bob["_id"])
        undecided = self.make_match(self.tournament, [a, b])
        bye = self.make_match(self.tournament, [a], winner=a.to_document())

        self.assertIsNone(EloService.update_ratings(self.db, undecided))
        self.assertIsNone(EloService.update_ratings(self.db, bye))
        self.assertEqual(self.db.users.find_one({"_id": alice["_id"]})["eloRating"], [])


if __name__ == "__main__":
    unittest.main()
