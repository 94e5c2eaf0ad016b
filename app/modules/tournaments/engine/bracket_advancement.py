"""
Applying results to a stored bracket.

BracketAdvancement holds every bracket match of a tournament keyed by
(bracket_type, round_number, position). Recording a result moves the
winner, and where the format has one the loser, into their next slots.
A match whose opponent turns out to be a BYE is completed as a walkover
straight away. Every touched key ends up in `changed`, so the caller only
persists those matches.
"""

from app.modules.tournaments.engine.bracket_progression import (
    losers_drop_position,
    losers_next_position,
    next_match_position,
    route_loser_to_consolation,
    team_for_position,
)
from app.modules.tournaments.engine.compass import CONSOLATION_ORDER
from app.modules.tournaments.engine.types import BYE, TBD, Match
from typing import Dict, List, Optional, Set, Tuple

BracketKey = Tuple[str, int, int]
Placement = Tuple[str, int, Optional[int]]


class BracketAdvancement:
    def __init__(self, tournament_type: str, matches: Dict[BracketKey, Match]):
        self.tournament_type = tournament_type
        self.matches = matches
        self.changed: Set[BracketKey] = set()
        self.rounds: Dict[str, int] = {}
        for bracket, round_number, _ in matches:
            self.rounds[bracket] = max(self.rounds.get(bracket, 0), round_number)

    def _keys(self, bracket: str, round_number: int) -> List[BracketKey]:
        return sorted(k for k in self.matches if k[0] == bracket and k[1] == round_number)

    def winner_target(self, key: BracketKey) -> Optional[Tuple[Placement, int]]:
        bracket, round_number, position = key
        if bracket in ("grand_final", "third_place"):
            return None
        if bracket == "losers":
            if round_number == self.rounds["losers"]:
                return ("grand_final", 1, 0), 2
            target_round, target_position, team = losers_next_position(round_number, position)
            return (bracket, target_round, target_position), team
        if round_number == self.rounds[bracket]:
            if bracket == "winners":
                return ("grand_final", 1, 0), 1
            return None
        target_round, target_position, team = next_match_position(round_number, position)
        return (bracket, target_round, target_position), team

    def loser_target(self, key: BracketKey) -> Optional[Tuple[Placement, Optional[int]]]:
        bracket, round_number, position = key
        if bracket == "winners":
            target_round, target_position, team = losers_drop_position(round_number, position)
            return ("losers", target_round, target_position), team
        if bracket != "main":
            return None
        if self.tournament_type == "compass":
            name = route_loser_to_consolation(round_number, position)
            if name in self.rounds:
                # Consolation brackets are filled in arrival order
                return (name, 1, None), None
            return None
        if "third_place" in self.rounds and round_number == self.rounds["main"] - 1:
            return ("third_place", 1, 0), team_for_position(position)
        return None

    def loser_fed_slots(self, bracket: str, round_number: int) -> List[Tuple[str, int, Tuple[int, ...]]]:
        """Rounds (and the team slots in them) that only the losers of this round can fill"""
        if bracket == "winners":
            target_round, _, _ = losers_drop_position(round_number, 0)
            teams = (1, 2) if round_number == 1 else (2,)
            return [("losers", target_round, teams)]
        if bracket != "main":
            return []
        if self.tournament_type == "compass":
            return [
                (name, 1, (1, 2))
                for name in CONSOLATION_ORDER
                if name in self.rounds and any(
                    route_loser_to_consolation(round_number, p) == name
                    for p in range(2 ** (self.rounds["main"] - round_number))
                )
            ]
        if "third_place" in self.rounds and round_number == self.rounds["main"] - 1:
            return [("third_place", 1, (1, 2))]
        return []

    def record_result(self, key: BracketKey, winner_team: int) -> None:
        match = self.matches[key]
        self._advance(key, match.team(winner_team), match.team(3 - winner_team))

    def _advance(self, key: BracketKey, winners: List[str], losers: List[str]) -> None:
        target = self.winner_target(key)
        if target:
            self._place(target[0], target[1], winners)
        target = self.loser_target(key)
        if target:
            self._place(target[0], target[1], losers)

    def _place(self, placement: Placement, team: Optional[int], players: List[str]) -> None:
        bracket, round_number, position = placement
        if position is None:
            free = self._first_free_slot(bracket, round_number)
            if free is None:
                return
            key, team = free
        else:
            key = (bracket, round_number, position)
        match = self.matches.get(key)
        if match is None:
            return
        match.set_team(team, players)
        self.changed.add(key)
        self._resolve_walkover(key)

    def _first_free_slot(self, bracket: str, round_number: int) -> Optional[Tuple[BracketKey, int]]:
        for key in self._keys(bracket, round_number):
            for team in (1, 2):
                if self.matches[key].team(team)[0] == TBD:
                    return key, team
        return None

    def _resolve_walkover(self, key: BracketKey) -> None:
        match = self.matches[key]
        if match.status == "completed":
            return
        first, second = match.team(1)[0], match.team(2)[0]
        if TBD in (first, second) or BYE not in (first, second):
            return
        # BYE against BYE pushes a BYE forward so later slots still resolve
        match.winner_team = 2 if first == BYE else 1
        match.status = "completed"
        match.is_draw = False
        self.changed.add(key)
        self._advance(key, match.team(match.winner_team), match.team(3 - match.winner_team))

    def resolve_walkovers(self) -> None:
        for key in sorted(self.matches):
            self._resolve_walkover(key)

    def seal(self, bracket: str, round_number: int, teams: Tuple[int, ...] = (1, 2)) -> None:
        """Turn the still-empty slots of a round into byes once nothing can fill them"""
        for key in self._keys(bracket, round_number):
            match = self.matches[key]
            for team in teams:
                if match.team(team)[0] == TBD:
                    match.set_team(team, [BYE, BYE])
                    self.changed.add(key)
            self._resolve_walkover(key)

    def close_round(self, bracket: str, round_number: int) -> None:
        for target_bracket, target_round, teams in self.loser_fed_slots(bracket, round_number):
            self.seal(target_bracket, target_round, teams)

    def is_complete(self) -> bool:
        return bool(self.matches) and all(m.status == "completed" for m in self.matches.values())

    def champion(self) -> Optional[str]:
        final_key = ("grand_final", 1, 0) if "grand_final" in self.rounds else ("main", self.rounds.get("main", 0), 0)
        final = self.matches.get(final_key)
        if final is None or final.status != "completed" or final.winner_team is None:
            return None
        return final.team(final.winner_team)[0]


def bracket_play_order(tournament_type: str, rounds: Dict[str, int]) -> List[Tuple[str, int]]:
    """Order in which bracket rounds are played, each one only after everything feeding it"""
    if "winners" in rounds:
        order = []
        losers_total = rounds.get("losers", 0)
        for winners_round in range(1, rounds["winners"] + 1):
            order.append(("winners", winners_round))
            fed = [1] if winners_round == 1 else [2 * (winners_round - 1), 2 * (winners_round - 1) + 1]
            order.extend(("losers", r) for r in fed if r <= losers_total)
        order.append(("grand_final", 1))
        return order

    main_total = rounds.get("main", 0)
    if tournament_type == "compass":
        order = []
        stage = 1
        while True:
            added = False
            if stage <= main_total:
                order.append(("main", stage))
                added = True
            for name in CONSOLATION_ORDER:
                source = 1 if name in ("east", "west") else 2
                consolation_round = stage - source
                if name in rounds and 1 <= consolation_round <= rounds[name]:
                    order.append((name, consolation_round))
                    added = True
            if not added and stage > main_total:
                return order
            stage += 1

    order = [("main", r) for r in range(1, main_total)]
    if "third_place" in rounds:
        order.append(("third_place", 1))
    if main_total:
        order.append(("main", main_total))
    return order
