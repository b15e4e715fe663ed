"""Data models for tournaments and brackets."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, TypedDict

from bson import ObjectId

from bracketeer.core.constants import PRIZE_TYPES, TOURNAMENT_STRUCTURES
from bracketeer.core.types import MongoDocument
from bracketeer.errors import ValidationError
from bracketeer.utils import parse_datetime, parse_int, to_object_id

NAME_MAX_LENGTH = 100


class Prize(TypedDict, total=False):
    """One prize awarded for a final rank."""

    type: str
    description: str
    amount: int
    itemName: str


class PrizeTier(TypedDict):
    """The prizes awarded for one final rank."""

    rank: int
    prizes: list[Prize]


class Tournament(MongoDocument, total=False):
    """A tournament document in MongoDB."""

    name: str
    game: ObjectId
    rules: str
    status: str
    structure: str
    teamSize: int
    maxParticipants: int
    entryFee: int
    prizeStructure: list[PrizeTier]
    registrationStartDate: datetime.datetime
    registrationEndDate: datetime.datetime
    checkInStartDate: datetime.datetime
    tournamentStartDate: datetime.datetime
    organizer: ObjectId
    brackets: list[ObjectId]
    # Bumped by every registration so concurrent sign-ups conflict
    registrationCount: int


class Bracket(MongoDocument, total=False):
    """A bracket; structure is read from the owning tournament."""

    tournament: ObjectId
    currentRound: int
    isCompleted: bool


def _parse_prize_structure(value: Any) -> list[PrizeTier]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("prizeStructure must be a list.")
    tiers: list[PrizeTier] = []
    for tier in value:
        if not isinstance(tier, dict) or not isinstance(tier.get("prizes"), list):
            raise ValidationError("Each prize tier needs a rank and a list of prizes.")
        prizes: list[Prize] = []
        for prize in tier["prizes"]:
            if not isinstance(prize, dict):
                raise ValidationError("Each prize must be an object.")
            parsed: Prize = {
                "type": prize.get("type"),
                "description": prize.get("description"),
            }
            if prize.get("amount") is not None:
                parsed["amount"] = parse_int(prize["amount"], "prize amount", 0)
            if prize.get("itemName"):
                parsed["itemName"] = str(prize["itemName"])
            prizes.append(parsed)
        tiers.append({"rank": parse_int(tier.get("rank"), "prize rank", 1), "prizes": prizes})
    return tiers


@dataclass
class TournamentDraft:
    """The organizer-controlled fields of a tournament, parsed from a payload."""

    name: str
    game: ObjectId
    structure: str
    team_size: int
    max_participants: int
    rules: str
    registration_start: datetime.datetime
    registration_end: datetime.datetime
    check_in_start: datetime.datetime
    tournament_start: datetime.datetime
    entry_fee: int = 0
    prize_structure: list[PrizeTier] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> TournamentDraft:
        """Parse a camelCase payload, raising ValidationError on bad types."""
        required = (
            "name",
            "game",
            "structure",
            "teamSize",
            "maxParticipants",
            "rules",
            "registrationStartDate",
            "registrationEndDate",
            "checkInStartDate",
            "tournamentStartDate",
        )
        missing = [key for key in required if data.get(key) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}.")
        return cls(
            name=str(data["name"]).strip(),
            game=to_object_id(data["game"], "game id"),
            structure=str(data["structure"]),
            team_size=parse_int(data["teamSize"], "teamSize"),
            max_participants=parse_int(data["maxParticipants"], "maxParticipants"),
            rules=str(data["rules"]),
            registration_start=parse_datetime(
                data["registrationStartDate"], "registrationStartDate"
            ),
            registration_end=parse_datetime(
                data["registrationEndDate"], "registrationEndDate"
            ),
            check_in_start=parse_datetime(data["checkInStartDate"], "checkInStartDate"),
            tournament_start=parse_datetime(
                data["tournamentStartDate"], "tournamentStartDate"
            ),
            entry_fee=parse_int(data.get("entryFee") or 0, "entryFee"),
            prize_structure=_parse_prize_structure(data.get("prizeStructure")),
        )

    def validate(self) -> None:
        """Check the draft for rule violations.

        Raises:
            ValueError: On the first violated rule.
        """
        if not self.name or len(self.name) > NAME_MAX_LENGTH:
            raise ValueError(f"Name must be 1-{NAME_MAX_LENGTH} characters.")
        if not self.rules.strip():
            raise ValueError("Rules are required.")
        if self.structure not in TOURNAMENT_STRUCTURES:
            raise ValueError(f"Unknown tournament structure '{self.structure}'.")
        if self.team_size < 1:
            raise ValueError("teamSize must be at least 1.")
        if self.max_participants < 2:  # noqa: PLR2004
            raise ValueError("maxParticipants must be at least 2.")
        if self.entry_fee < 0:
            raise ValueError("entryFee cannot be negative.")
        if self.registration_end <= self.registration_start:
            raise ValueError("Registration must end after it starts.")
        if self.check_in_start <= self.registration_end:
            raise ValueError("Check-in must start after registration ends.")
        if self.tournament_start <= self.check_in_start:
            raise ValueError("The tournament must start after check-in opens.")

        ranks = [tier["rank"] for tier in self.prize_structure]
        if len(ranks) != len(set(ranks)):
            raise ValueError("Each rank may appear only once in prizeStructure.")
        for tier in self.prize_structure:
            if not tier["prizes"]:
                raise ValueError(f"Rank {tier['rank']} has no prizes.")
            for prize in tier["prizes"]:
                if prize.get("type") not in PRIZE_TYPES:
                    raise ValueError(f"Unknown prize type '{prize.get('type')}'.")
                if not prize.get("description"):
                    raise ValueError("Every prize needs a description.")
                if prize["type"] == "wallet_credit" and prize.get("amount") is None:
                    raise ValueError("Wallet credit prizes need an amount.")

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "game": self.game,
            "structure": self.structure,
            "teamSize": self.team_size,
            "maxParticipants": self.max_participants,
            "rules": self.rules,
            "registrationStartDate": self.registration_start,
            "registrationEndDate": self.registration_end,
            "checkInStartDate": self.check_in_start,
            "tournamentStartDate": self.tournament_start,
            "entryFee": self.entry_fee,
            "prizeStructure": self.prize_structure,
        }
