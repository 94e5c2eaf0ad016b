"""
Value types shared by every tournament format.

Engine functions only ever see these models: the service layer converts
Supabase rows in and out of them. Player slots are plain user ids, with the
BYE and TBD placeholders standing in for "no opponent" and "not decided yet".
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional, Set

BYE = "BYE"
TBD = "TBD"
PLACEHOLDERS = (BYE, TBD)

TournamentType = Literal[
    "americano",
    "mexicano",
    "round_robin",
    "knockout_single",
    "knockout_double",
    "swiss",
    "monrad",
    "compass",
]
ParticipantStatus = Literal["registered", "checked_in", "no_show", "withdrawn"]
MatchStatus = Literal["pending", "in_progress", "completed", "forfeited"]
CourtStrategy = Literal["balanced", "sequential", "random"]
SeedingMethod = Literal["ranked", "random", "manual"]
SwissPairingMethod = Literal["slide", "fold", "adjacent", "accelerated"]
BracketType = Literal[
    "main",
    "third_place",
    "winners",
    "losers",
    "grand_final",
    "east",
    "west",
    "north_east",
    "south_east",
    "north_west",
    "south_west",
]

BRACKET_FORMATS = ("knockout_single", "knockout_double", "compass")
TEAM_SLOTS = ("team1", "team2")


def is_placeholder(player_id: Optional[str]) -> bool:
    return player_id is None or player_id in PLACEHOLDERS


class Participant(BaseModel):
    user_id: str
    id: Optional[str] = None
    tournament_id: Optional[str] = None
    status: ParticipantStatus = "registered"


class Court(BaseModel):
    id: str
    name: str = ""
    org_id: Optional[str] = None
    active: bool = True


class MatchPairing(BaseModel):
    """Two teams of two slots. Singles entries occupy both slots of their team."""
    team1_player1_id: str = TBD
    team1_player2_id: str = TBD
    team2_player1_id: str = TBD
    team2_player2_id: str = TBD
    court_id: Optional[str] = None
    bracket_position: Optional[int] = None
    status: MatchStatus = "pending"
    is_draw: bool = False

    @field_validator("team1_player1_id", "team1_player2_id", "team2_player1_id", "team2_player2_id", mode="before")
    @classmethod
    def empty_slot_is_tbd(cls, value):
        # Unfilled bracket slots are stored as NULL
        return TBD if value is None else value

    @classmethod
    def doubles(cls, team1: List[str], team2: List[str], **kwargs) -> "MatchPairing":
        return cls(
            team1_player1_id=team1[0],
            team1_player2_id=team1[1],
            team2_player1_id=team2[0],
            team2_player2_id=team2[1],
            **kwargs,
        )

    @classmethod
    def singles(cls, player1: str, player2: str, **kwargs) -> "MatchPairing":
        return cls.doubles([player1, player1], [player2, player2], **kwargs)

    def team(self, number: int) -> List[str]:
        if number == 1:
            return [self.team1_player1_id, self.team1_player2_id]
        return [self.team2_player1_id, self.team2_player2_id]

    def set_team(self, number: int, players: List[str]) -> None:
        setattr(self, f"team{number}_player1_id", players[0])
        setattr(self, f"team{number}_player2_id", players[1])

    def slots(self) -> List[str]:
        return self.team(1) + self.team(2)

    def players(self) -> Set[str]:
        """Real players in the match, each counted once"""
        return {p for p in self.slots() if not is_placeholder(p)}

    def is_team_decided(self, number: int) -> bool:
        return not is_placeholder(self.team(number)[0])


class Match(MatchPairing):
    id: Optional[str] = None
    round_id: Optional[str] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winner_team: Optional[int] = None


class Standing(BaseModel):
    user_id: str
    tournament_id: Optional[str] = None
    matches_played: int = 0
    matches_won: int = 0
    matches_drawn: int = 0
    matches_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    games_diff: int = 0
    points: int = 0
    rank: Optional[int] = None
    fair_play_points: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    conduct_bonus: int = 0


class TournamentConfig(BaseModel):
    type: TournamentType
    points_per_win: int = 3
    points_per_draw: int = 1
    points_per_loss: int = 0
    match_duration_minutes: int = 90
    format_settings: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False


class BracketRound(BaseModel):
    round_number: int
    round_name: str
    matches: List[MatchPairing] = Field(default_factory=list)


class KnockoutBracket(BaseModel):
    rounds: List[BracketRound]
    bracket_size: int
    total_byes: int = 0
    bye_players: List[str] = Field(default_factory=list)
    bronze_match: Optional[MatchPairing] = None


class DoubleEliminationBracket(BaseModel):
    winners: KnockoutBracket
    losers: List[BracketRound]
    grand_final: MatchPairing


class ConsolationBracket(BaseModel):
    name: str
    label: str
    source_round: int
    bracket_size: int
    rounds: List[BracketRound] = Field(default_factory=list)


class CompassDraw(BaseModel):
    main: KnockoutBracket
    consolation: Dict[str, ConsolationBracket] = Field(default_factory=dict)

    @property
    def total_brackets(self) -> int:
        return 1 + len(self.consolation)


class SwissRound(BaseModel):
    round_number: int
    matches: List[MatchPairing] = Field(default_factory=list)
    byes: List[str] = Field(default_factory=list)


class MonradConfig(BaseModel):
    swiss_rounds: int
    final_bracket_size: int
    pairing_method: SwissPairingMethod = "slide"


def checked_in_ids(participants: List[Participant]) -> List[str]:
    """Ids of the participants that may play, in registration order"""
    return [p.user_id for p in participants if p.status == "checked_in"]


def player_appearances(matches: List[MatchPairing]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for match in matches:
        for player in match.players():
            counts[player] = counts.get(player, 0) + 1
    return counts


def duplicate_player_errors(matches: List[MatchPairing]) -> List[str]:
    return [
        f"Player {player} appears {count} times in the same round"
        for player, count in player_appearances(matches).items()
        if count > 1
    ]
