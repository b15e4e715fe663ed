"""Tests for the match result pipeline."""

from __future__ import annotations

import unittest

from bson import ObjectId

from bracketeer.core.constants import (
    MATCH_ACTIVE,
    MATCH_COMPLETED,
    MATCH_DISPUTED,
    MATCH_PENDING,
    MATCH_READY,
    ROLE_SUPPORT,
)
from bracketeer.core.types import ParticipantRef
from bracketeer.errors import (
    ForbiddenError,
    InvalidStateError,
    MatchIntegrityError,
    NotFoundError,
    ValidationError,
)
from bracketeer.match.models import LobbyUpdate
from bracketeer.match.services import MatchService
from tests.conftest import BaseTestCase


def scores_payload(first, first_score, second, second_score):
    return {
        "scores": [
            {"participantId": str(first["_id"]), "score": first_score},
            {"participantId": str(second["_id"]), "score": second_score},
        ]
    }


class ReportResultTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.organizer = self.make_admin()
        self.game = self.make_game()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.tournament = self.make_tournament(self.organizer, self.game)
        self.match = self.make_match(
            self.tournament,
            [ParticipantRef.user(self.alice["_id"]), ParticipantRef.user(self.bob["_id"])],
        )

    def test_report_holds_match_for_adjudication(self) -> None:
        match = MatchService.report_result(
            self.match["_id"], self.alice["_id"], scores_payload(self.alice, 3, self.bob, 1)
        )

        self.assertEqual(match["status"], MATCH_DISPUTED)
        stored = self.db.matches.find_one({"_id": self.match["_id"]})
        self.assertEqual(stored["reportedBy"], self.alice["_id"])
        self.assertIsNone(stored["winner"])
        self.assertEqual(stored["scores"][0]["score"], 3)
        self.assertEqual(self.sessions[-1].committed, 1)

    def test_tie_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            MatchService.report_result(
                self.match["_id"], self.alice["_id"], scores_payload(self.alice, 2, self.bob, 2)
            )
        stored = self.db.matches.find_one({"_id": self.match["_id"]})
        self.assertEqual(stored["status"], MATCH_ACTIVE)
        self.assertIsNone(stored["reportedBy"])

    def test_second_report_is_rejected(self) -> None:
        MatchService.report_result(
            self.match["_id"], self.alice["_id"], scores_payload(self.alice, 3, self.bob, 1)
        )
        with self.assertRaises(InvalidStateError):
            MatchService.report_result(
                self.match["_id"], self.bob["_id"], scores_payload(self.alice, 0, self.bob, 3)
            )
        stored = self.db.matches.find_one({"_id": self.match["_id"]})
        self.assertEqual(stored["reportedBy"], self.alice["_id"])

    def test_outsider_cannot_report(self) -> None:
        outsider = self.make_user("outsider")
        with self.assertRaises(ForbiddenError):
            MatchService.report_result(
                self.match["_id"], outsider["_id"], scores_payload(self.alice, 3, self.bob, 1)
            )

    def test_unknown_match(self) -> None:
        with self.assertRaises(NotFoundError):
            MatchService.report_result(
                ObjectId(), self.alice["_id"], scores_payload(self.alice, 3, self.bob, 1)
            )

    def test_report_must_name_the_match_participants(self) -> None:
        stranger = self.make_user("stranger")
        with self.assertRaises(ValidationError):
            MatchService.report_result(
                self.match["_id"],
                self.alice["_id"],
                scores_payload(self.alice, 3, stranger, 1),
            )

    def test_malformed_reports(self) -> None:
        for payload in (
            {},
            {"scores": [], "results": []},
            {"scores": [{"participantId": str(self.alice["_id"]), "score": 1}]},
            scores_payload(self.alice, -1, self.bob, 2),
            {"scores": "3-1"},
        ):
            with self.subTest(payload=payload), self.assertRaises(ValidationError):
                MatchService.report_result(self.match["_id"], self.alice["_id"], payload)

    def test_missing_match_wins_over_malformed_report(self) -> None:
        with self.assertRaises(NotFoundError):
            MatchService.report_result(ObjectId(), self.alice["_id"], {"scores": "3-1"})
        with self.assertRaises(ForbiddenError):
            MatchService.report_result(
                self.match["_id"], self.make_user("outsider")["_id"], {}
            )
        response = self.client.post(
            f"/matches/{ObjectId()}/report",
            json={},
            headers=self.auth_headers(self.alice),
        )
        self.assertEqual(response.status_code, 404)

    def test_pending_match_cannot_be_reported(self) -> None:
        self.db.matches.update_one(
            {"_id": self.match["_id"]}, {"$set": {"status": MATCH_PENDING}}
        )
        with self.assertRaises(InvalidStateError):
            MatchService.report_result(
                self.match["_id"], self.alice["_id"], scores_payload(self.alice, 3, self.bob, 1)
            )

    def test_team_member_reports_for_team(self) -> None:
        mate = self.make_user("mate")
        rival = self.make_user("rival")
        blue = self.make_team(self.alice, [mate], name="Blue", tag="BLU")
        red = self.make_team(rival, name="Red", tag="RED")
        match = self.make_match(
            self.tournament,
            [ParticipantRef.team(blue["_id"]), ParticipantRef.team(red["_id"])],
        )

        reported = MatchService.report_result(
            match["_id"], mate["_id"], scores_payload(blue, 2, red, 0)
        )
        self.assertEqual(reported["reportedBy"], mate["_id"])


class ConfirmResultTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.organizer = self.make_admin()
        self.game = self.make_game()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.tournament = self.make_tournament(self.organizer, self.game)
        self.match = self.make_match(
            self.tournament,
            [ParticipantRef.user(self.alice["_id"]), ParticipantRef.user(self.bob["_id"])],
        )
        MatchService.report_result(
            self.match["_id"], self.alice["_id"], scores_payload(self.alice, 3, self.bob, 1)
        )

    def test_confirm_completes_match_and_updates_ratings(self) -> None:
        match = MatchService.confirm_result(self.match["_id"])

        self.assertEqual(match["status"], MATCH_COMPLETED)
        self.assertEqual(match["winner"]["participantId"], self.alice["_id"])
        self.assertIsNotNone(match["completedAt"])
        alice = self.db.users.find_one({"_id": self.alice["_id"]})
        bob = self.db.users.find_one({"_id": self.bob["_id"]})
        self.assertEqual(alice["eloRating"], [{"game": self.game["_id"], "rating": 1016}])
        self.assertEqual(bob["eloRating"], [{"game": self.game["_id"], "rating": 984}])

    def test_open_dispute_blocks_confirmation(self) -> None:
        self.db.disputes.insert_one(
            {"match": self.match["_id"], "reporter": self.bob["_id"], "status": "open"}
        )
        with self.assertRaises(InvalidStateError):
            MatchService.confirm_result(self.match["_id"])
        self.assertEqual(
            self.db.matches.find_one({"_id": self.match["_id"]})["status"], MATCH_DISPUTED
        )

    def test_confirm_twice_is_rejected(self) -> None:
        MatchService.confirm_result(self.match["_id"])
        with self.assertRaises(InvalidStateError):
            MatchService.confirm_result(self.match["_id"])

    def test_confirm_route_is_admin_only(self) -> None:
        url = f"/matches/{self.match['_id']}/confirm"
        response = self.client.post(url, headers=self.auth_headers(self.alice))
        self.assertEqual(response.status_code, 403)
        response = self.client.post(url, headers=self.auth_headers(self.organizer))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], MATCH_COMPLETED)


class LobbyAndAccessTestCase(BaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.organizer = self.make_user("organizer", role="tournament_manager")
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.tournament = self.make_tournament(self.organizer)
        self.match = self.make_match(
            self.tournament,
            [ParticipantRef.user(self.alice["_id"]), ParticipantRef.user(self.bob["_id"])],
            status=MATCH_PENDING,
        )

    def test_publishing_lobby_readies_match(self) -> None:
        match = MatchService.update_lobby(
            self.match["_id"],
            self.principal(self.organizer),
            LobbyUpdate(code="ABCD", password="pw", is_published=True),
        )
        self.assertEqual(match["status"], MATCH_READY)
        self.assertEqual(match["lobbyDetails"]["code"], "ABCD")

        started = MatchService.start_match(self.match["_id"], self.principal(self.organizer))
        self.assertEqual(started["status"], MATCH_ACTIVE)

    def test_players_cannot_manage_lobby(self) -> None:
        with self.assertRaises(ForbiddenError):
            MatchService.update_lobby(
                self.match["_id"], self.principal(self.alice), LobbyUpdate(code="X")
            )
        with self.assertRaises(ForbiddenError):
            MatchService.start_match(self.match["_id"], self.principal(self.alice))

    def test_active_match_cannot_be_started_again(self) -> None:
        MatchService.start_match(self.match["_id"], self.principal(self.organizer))
        with self.assertRaises(InvalidStateError):
            MatchService.start_match(self.match["_id"], self.principal(self.organizer))

    def test_lobby_payload_validation(self) -> None:
        with self.assertRaises(ValidationError):
            LobbyUpdate.from_payload({"isPublished": "yes"})
        with self.assertRaises(ValidationError):
            LobbyUpdate.from_payload({"scheduledTime": "tomorrow"})

    def test_get_match_visibility(self) -> None:
        outsider = self.make_user("outsider")
        support = self.make_user("helper", role=ROLE_SUPPORT)
        for user in (self.alice, self.organizer, support):
            match = MatchService.get_match(self.match["_id"], self.principal(user))
            self.assertEqual(match["_id"], self.match["_id"])
        with self.assertRaises(ForbiddenError):
            MatchService.get_match(self.match["_id"], self.principal(outsider))

    def test_lobby_route(self) -> None:
        response = self.client.patch(
            f"/matches/{self.match['_id']}/lobby",
            json={"code": " ROOM1 ", "isPublished": True},
            headers=self.auth_headers(self.organizer),
        )
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["lobbyDetails"]["code"], "ROOM1")
        self.assertEqual(data["status"], MATCH_READY)

    def test_list_matches_by_tournament(self) -> None:
        response = self.client.get(
            f"/matches?tournament={self.tournament['_id']}",
            headers=self.auth_headers(self.alice),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["totalResults"], 1)


class MatchIntegrityOnSaveTestCase(BaseTestCase):
    def test_completed_match_without_outcome_is_not_saved(self) -> None:
        organizer = self.make_admin()
        alice = self.make_user("alice")
        tournament = self.make_tournament(organizer)
        match = self.make_match(tournament, [ParticipantRef.user(alice["_id"])])

        match["status"] = MATCH_COMPLETED
        with self.assertRaises(MatchIntegrityError):
            MatchService.save(self.db, match)
        self.assertEqual(self.db.matches.find_one({"_id": match["_id"]})["status"], MATCH_ACTIVE)


if __name__ == "__main__":
    unittest.main()
