"""Tests for single-elimination bracket construction."""

from __future__ import annotations

import random
import unittest

from bson import ObjectId

from bracketeer.core.constants import MATCH_COMPLETED, MATCH_PENDING
from bracketeer.core.types import ParticipantRef
from bracketeer.errors import InvalidStateError, MatchIntegrityError, ValidationError
from bracketeer.match.models import check_match_integrity
from bracketeer.tournament.bracket import BracketGenerator


def users(count: int) -> list[ParticipantRef]:
    return [ParticipantRef.user(ObjectId()) for _ in range(count)]


class BracketGeneratorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tournament = {"_id": ObjectId(), "game": ObjectId()}
        self.bracket_id = ObjectId()

    def test_even_pool_has_no_bye(self) -> None:
        players = users(4)
        matches = BracketGenerator.build_round(
            self.tournament, self.bracket_id, 1, players, None
        )
        self.assertEqual(len(matches), 2)
        self.assertTrue(all(m["status"] == MATCH_PENDING for m in matches))
        self.assertEqual(
            [p["participantId"] for m in matches for p in m["participants"]],
            [p.id for p in players],
        )

    def test_odd_pool_gets_exactly_one_completed_bye(self) -> None:
        players = users(5)
        matches = BracketGenerator.build_round(
            self.tournament, self.bracket_id, 1, players, None
        )
        byes = [m for m in matches if len(m["participants"]) == 1]
        self.assertEqual(len(matches), 3)
        self.assertEqual(len(byes), 1)
        self.assertEqual(byes[0]["status"], MATCH_COMPLETED)
        self.assertEqual(byes[0]["winner"], players[-1].to_document())
        self.assertEqual(byes[0]["matchNumber"], 3)

    def test_matches_copy_game_and_round(self) -> None:
        scheduled = None
        matches = BracketGenerator.build_round(
            self.tournament, self.bracket_id, 2, users(2), scheduled
        )
        self.assertEqual(matches[0]["game"], self.tournament["game"])
        self.assertEqual(matches[0]["round"], 2)
        self.assertEqual(matches[0]["bracket"], self.bracket_id)

    def test_team_events_use_team_participants(self) -> None:
        team_id, user_id = ObjectId(), ObjectId()
        refs = BracketGenerator.participants_from_registrations(
            [{"user": user_id, "team": team_id}], team_size=2
        )
        self.assertEqual(refs, [ParticipantRef.team(team_id)])
        refs = BracketGenerator.participants_from_registrations(
            [{"user": user_id}], team_size=1
        )
        self.assertEqual(refs, [ParticipantRef.user(user_id)])

    def test_matches_do_not_share_mutable_fields(self) -> None:
        matches = BracketGenerator.build_round(
            self.tournament, self.bracket_id, 1, users(5), None
        )
        matches[0]["scores"].append({"participantId": ObjectId(), "score": 3})
        matches[0]["lobbyDetails"]["code"] = "ABCD"
        for other in matches[1:]:
            self.assertEqual(other["scores"], [])
            self.assertEqual(other["results"], [])
            self.assertEqual(other["lobbyDetails"], {"isPublished": False})
            self.assertIsNot(other["results"], matches[0]["results"])

    def test_team_events_reject_solo_entries(self) -> None:
        with self.assertRaises(InvalidStateError):
            BracketGenerator.participants_from_registrations(
                [{"user": ObjectId(), "team": ObjectId()}, {"user": ObjectId()}],
                team_size=2,
            )

    def test_seed_is_a_permutation(self) -> None:
        players = users(6)
        seeded = BracketGenerator.seed(players, random.Random(7))
        self.assertCountEqual(seeded, players)
        self.assertIsNot(seeded, players)

    def test_other_structures_are_not_implemented(self) -> None:
        BracketGenerator.ensure_supported("single_elimination")
        with self.assertRaises(ValidationError):
            BracketGenerator.ensure_supported("round_robin")


class MatchIntegrityTestCase(unittest.TestCase):
    def test_completed_match_needs_an_outcome(self) -> None:
        match = {
            "status": MATCH_COMPLETED,
            "participants": [ParticipantRef.user(ObjectId()).to_document()] * 2,
            "winner": None,
            "scores": [],
            "results": [],
        }
        with self.assertRaises(MatchIntegrityError):
            check_match_integrity(match)
        match["scores"] = [{"participantId": ObjectId(), "score": 1}]
        check_match_integrity(match)

    def test_participant_count_is_bounded(self) -> None:
        entry = ParticipantRef.user(ObjectId()).to_document()
        with self.assertRaises(MatchIntegrityError):
            check_match_integrity({"status": MATCH_PENDING, "participants": []})
        with self.assertRaises(MatchIntegrityError):
            check_match_integrity({"status": MATCH_PENDING, "participants": [entry] * 3})

    def test_participant_ref_rejects_unknown_kind(self) -> None:
        with self.assertRaises(ValueError):
            ParticipantRef("Clan", ObjectId())


if __name__ == "__main__":
    unittest.main()
