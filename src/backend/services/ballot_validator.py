"""
Ballot validation.

Validation is pure: it reads a snapshot of the contest catalog and never
touches the database, so it can run before any row is locked.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.exceptions import (
    DuplicateSelection,
    ElectionNotFound,
    ElectionNotVotable,
    EmptyBallot,
    TooManySelections,
    UnknownCandidate,
    UnknownContest,
)
from models.election import Election, ElectionStatus


@dataclass(frozen=True)
class ContestRule:
    """What the catalog allows for one contest."""

    contest_id: str
    max_selections: int
    candidate_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Ballot:
    """
    A voter's selections, contest id -> candidate ids in submission order.

    Contests may be omitted entirely (partial ballots are allowed).
    """

    selections: dict[str, tuple[str, ...]]
    repeated_contests: tuple[str, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Iterable[str]]]) -> "Ballot":
        """Build a ballot from (contest_id, candidate_ids) pairs.

        A contest listed twice is not merged: the first entry is kept and the
        contest is noted in ``repeated_contests`` for the validator to reject.
        """
        selections: dict[str, tuple[str, ...]] = {}
        repeated: list[str] = []
        for contest_id, candidate_ids in pairs:
            if contest_id in selections:
                if contest_id not in repeated:
                    repeated.append(contest_id)
                continue
            selections[contest_id] = tuple(candidate_ids)
        return cls(selections=selections, repeated_contests=tuple(repeated))

    def picks(self) -> list[tuple[str, str]]:
        """Flatten to (contest_id, candidate_id) pairs in submission order."""
        return [
            (contest_id, candidate_id)
            for contest_id, candidate_ids in self.selections.items()
            for candidate_id in candidate_ids
        ]

    @property
    def total_selections(self) -> int:
        return sum(len(candidate_ids) for candidate_ids in self.selections.values())

    def as_lists(self) -> dict[str, list[str]]:
        return {contest_id: list(ids) for contest_id, ids in self.selections.items()}


def ensure_election_votable(election: Optional[Election], now: Optional[datetime] = None) -> Election:
    """Fail unless the election exists, is Active and ``now`` is inside its window."""
    if election is None:
        raise ElectionNotFound()

    now = now or datetime.now(timezone.utc)
    if election.status != ElectionStatus.ACTIVE.value:
        raise ElectionNotVotable(f"Election is {election.status}, not accepting votes")
    if not election.is_within_window(now):
        raise ElectionNotVotable("Election is outside its voting window")
    return election


class BallotValidator:
    """Checks a ballot against one election's contest catalog."""

    def __init__(self, catalog: Iterable[ContestRule]):
        self.rules: dict[str, ContestRule] = {rule.contest_id: rule for rule in catalog}

    def validate(
        self,
        ballot: Ballot,
        election: Optional[Election],
        now: Optional[datetime] = None,
    ) -> Ballot:
        """
        Validate a ballot and return it unchanged.

        Checks run in a fixed order over the whole ballot, so a ballot with
        several problems always reports the same one: unknown contest, then
        over-selection, then foreign candidate, then a repeated contest or
        pick, then an empty ballot.
        """
        ensure_election_votable(election, now)

        for contest_id in ballot.selections:
            if contest_id not in self.rules:
                raise UnknownContest(f"Contest {contest_id} is not part of this election")

        for contest_id, candidate_ids in ballot.selections.items():
            limit = self.rules[contest_id].max_selections
            if len(candidate_ids) > limit:
                raise TooManySelections(
                    f"Contest {contest_id} allows at most {limit} selection(s), got {len(candidate_ids)}"
                )

        for contest_id, candidate_ids in ballot.selections.items():
            allowed = self.rules[contest_id].candidate_ids
            for candidate_id in candidate_ids:
                if candidate_id not in allowed:
                    raise UnknownCandidate(
                        f"Candidate {candidate_id} does not belong to contest {contest_id}"
                    )

        for contest_id in ballot.repeated_contests:
            raise DuplicateSelection(f"Contest {contest_id} appears more than once")

        for contest_id, candidate_ids in ballot.selections.items():
            if len(set(candidate_ids)) != len(candidate_ids):
                raise DuplicateSelection(f"Contest {contest_id} repeats a candidate")

        if ballot.total_selections == 0:
            raise EmptyBallot()

        return ballot
