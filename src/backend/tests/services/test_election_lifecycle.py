"""
Tests for election administration and lifecycle rules.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.exceptions import (
    CandidateNotFound,
    Conflict,
    ContestNotFound,
    ElectionNotFound,
    InvalidContestDefinition,
    InvalidElectionTransition,
    InvalidElectionWindow,
    VoterNotFound,
)
from models.contest import Contest, ContestType
from models.election import Election, ElectionStatus
from services.election_lifecycle import (
    ElectionAdminService,
    resolve_max_selections,
    validate_transition,
    validate_window,
)

START = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)
END = START + timedelta(days=1)


def _election(status: ElectionStatus = ElectionStatus.DRAFT) -> Election:
    return Election(id="e-1", title="Board Election", start_date=START, end_date=END, status=status.value)


@pytest.fixture
def repos() -> dict[str, AsyncMock]:
    return {
        "elections": AsyncMock(),
        "contests": AsyncMock(),
        "eligibility": AsyncMock(),
        "votes": AsyncMock(),
        "users": AsyncMock(),
        "audit": AsyncMock(),
    }


@pytest.fixture
def service(mock_db_session: AsyncMock, repos: dict[str, AsyncMock]) -> ElectionAdminService:
    return ElectionAdminService(mock_db_session, **repos)


@pytest.mark.unit
class TestLifecycleRules:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ElectionStatus.DRAFT, ElectionStatus.ACTIVE),
            (ElectionStatus.DRAFT, ElectionStatus.CANCELLED),
            (ElectionStatus.ACTIVE, ElectionStatus.COMPLETED),
            (ElectionStatus.ACTIVE, ElectionStatus.CANCELLED),
        ],
    )
    def test_allowed_transitions(self, current: ElectionStatus, target: ElectionStatus) -> None:
        validate_transition(current.value, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ElectionStatus.DRAFT, ElectionStatus.COMPLETED),
            (ElectionStatus.ACTIVE, ElectionStatus.DRAFT),
            (ElectionStatus.COMPLETED, ElectionStatus.CANCELLED),
            (ElectionStatus.CANCELLED, ElectionStatus.ACTIVE),
        ],
    )
    def test_refused_transitions(self, current: ElectionStatus, target: ElectionStatus) -> None:
        with pytest.raises(InvalidElectionTransition):
            validate_transition(current.value, target)

    def test_window_must_be_forward(self) -> None:
        with pytest.raises(InvalidElectionWindow):
            validate_window(END, START)
        with pytest.raises(InvalidElectionWindow):
            validate_window(START, START)

    def test_naive_window_treated_as_utc(self) -> None:
        start, end = validate_window(datetime(2026, 1, 1), datetime(2026, 1, 2))
        assert start.tzinfo is timezone.utc
        assert end.tzinfo is timezone.utc

    def test_single_choice_types_fixed_at_one(self) -> None:
        assert resolve_max_selections(ContestType.CHOOSE_ONE, None) == 1
        assert resolve_max_selections(ContestType.YES_NO, 1) == 1
        with pytest.raises(InvalidContestDefinition):
            resolve_max_selections(ContestType.CHOOSE_ONE, 3)

    def test_multi_select_needs_limit(self) -> None:
        assert resolve_max_selections(ContestType.MULTI_SELECT, 3) == 3
        with pytest.raises(InvalidContestDefinition):
            resolve_max_selections(ContestType.MULTI_SELECT, None)


@pytest.mark.unit
class TestElectionAdminService:
    async def test_create_election_commits_and_audits(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock], mock_db_session: AsyncMock
    ) -> None:
        repos["elections"].create.return_value = _election()

        election = await service.create_election("admin-1", "Board Election", START, END)

        assert election.status == ElectionStatus.DRAFT.value
        repos["audit"].record.assert_awaited_once()
        assert repos["audit"].record.call_args.kwargs["operation_type"] == "ELECTION_CREATE"
        mock_db_session.commit.assert_awaited_once()

    async def test_create_rejects_bad_window(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock], mock_db_session: AsyncMock
    ) -> None:
        with pytest.raises(InvalidElectionWindow):
            await service.create_election("admin-1", "Board Election", END, START)

        repos["elections"].create.assert_not_awaited()
        mock_db_session.commit.assert_not_awaited()

    async def test_activate_requires_candidates(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election()
        empty_contest = MagicMock(candidates=[])
        repos["contests"].list_contests.return_value = [empty_contest]

        with pytest.raises(Conflict):
            await service.change_status("admin-1", "e-1", ElectionStatus.ACTIVE)

        repos["elections"].set_status.assert_not_awaited()

    async def test_activate(self, service: ElectionAdminService, repos: dict[str, AsyncMock]) -> None:
        election = _election()
        repos["elections"].get_by_id.return_value = election
        repos["contests"].list_contests.return_value = [MagicMock(candidates=[MagicMock()])]

        await service.change_status("admin-1", "e-1", ElectionStatus.ACTIVE)

        repos["elections"].set_status.assert_awaited_once_with(election, ElectionStatus.ACTIVE)
        assert repos["audit"].record.call_args.kwargs["new_values"] == {"from": "Draft", "to": "Active"}

    async def test_change_status_unknown_election(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = None

        with pytest.raises(ElectionNotFound):
            await service.change_status("admin-1", "missing", ElectionStatus.CANCELLED)

    async def test_window_locked_after_draft(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.ACTIVE)

        with pytest.raises(Conflict):
            await service.update_election("admin-1", "e-1", end_date=END + timedelta(days=1))

    async def test_title_editable_while_active(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        election = _election(ElectionStatus.ACTIVE)
        repos["elections"].get_by_id.return_value = election

        await service.update_election("admin-1", "e-1", title="Renamed")

        repos["elections"].update.assert_awaited_once()
        assert repos["elections"].update.call_args.kwargs["title"] == "Renamed"

    async def test_completed_election_is_frozen(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.COMPLETED)

        with pytest.raises(Conflict):
            await service.add_contest("admin-1", "e-1", "Late contest", ContestType.CHOOSE_ONE)

    async def test_remove_candidate_with_votes_refused(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.ACTIVE)
        repos["contests"].get_contest.return_value = MagicMock()
        repos["contests"].get_candidate.return_value = MagicMock()
        repos["votes"].has_votes_for_candidate.return_value = True

        with pytest.raises(Conflict):
            await service.remove_candidate("admin-1", "e-1", "c-1", "k-1")

        repos["contests"].remove_candidate.assert_not_awaited()

    async def test_remove_missing_candidate(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = MagicMock()
        repos["contests"].get_candidate.return_value = None

        with pytest.raises(CandidateNotFound):
            await service.remove_candidate("admin-1", "e-1", "c-1", "k-1")

    async def test_grant_voters_skips_unknown_users(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election()
        repos["users"].exists.side_effect = lambda user_id: user_id != "ghost"

        granted, unknown = await service.grant_voters("admin-1", "e-1", ["u1", "ghost", "u2", "u1"])

        assert granted == ["u1", "u2"]
        assert unknown == ["ghost"]
        assert repos["eligibility"].grant.await_count == 2

    async def test_revoke_missing_voter(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election()
        repos["eligibility"].revoke.return_value = False

        with pytest.raises(VoterNotFound):
            await service.revoke_voter("admin-1", "e-1", "u1")

    async def test_revoke_voted_voter_propagates_conflict(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock], mock_db_session: AsyncMock
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.ACTIVE)
        repos["eligibility"].revoke.side_effect = Conflict("Cannot remove a voter who has already voted")

        with pytest.raises(Conflict):
            await service.revoke_voter("admin-1", "e-1", "u1")

        mock_db_session.commit.assert_not_awaited()


@pytest.mark.unit
class TestContestEdits:
    async def test_update_contest_with_votes_refused(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.ACTIVE)
        repos["contests"].get_contest.return_value = MagicMock()
        repos["votes"].has_votes_for_contest.return_value = True

        with pytest.raises(Conflict):
            await service.update_contest("admin-1", "e-1", "c-1", title="Renamed")

        repos["contests"].update_contest.assert_not_awaited()

    async def test_update_missing_contest(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = None

        with pytest.raises(ContestNotFound):
            await service.update_contest("admin-1", "e-1", "c-1", title="Renamed")

    async def test_fix_multi_select_limit_in_draft(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock], mock_db_session: AsyncMock
    ) -> None:
        contest = Contest(id="c-1", election_id="e-1", title="Council", contest_type="MultiSelect", max_selections=5)
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = contest
        repos["votes"].has_votes_for_contest.return_value = False

        await service.update_contest("admin-1", "e-1", "c-1", max_selections=2)

        kwargs = repos["contests"].update_contest.call_args.kwargs
        assert kwargs["max_selections"] == 2
        assert kwargs["contest_type"] is None
        assert repos["audit"].record.call_args.kwargs["operation_type"] == "CONTEST_UPDATE"
        mock_db_session.commit.assert_awaited_once()

    async def test_switch_to_choose_one_resets_limit(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        contest = Contest(id="c-1", election_id="e-1", title="Council", contest_type="MultiSelect", max_selections=5)
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = contest
        repos["votes"].has_votes_for_contest.return_value = False

        await service.update_contest("admin-1", "e-1", "c-1", contest_type=ContestType.CHOOSE_ONE)

        kwargs = repos["contests"].update_contest.call_args.kwargs
        assert kwargs["contest_type"] == "ChooseOne"
        assert kwargs["max_selections"] == 1

    async def test_choose_one_limit_cannot_grow(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        contest = Contest(id="c-1", election_id="e-1", title="President", contest_type="ChooseOne", max_selections=1)
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = contest
        repos["votes"].has_votes_for_contest.return_value = False

        with pytest.raises(InvalidContestDefinition):
            await service.update_contest("admin-1", "e-1", "c-1", max_selections=3)

    async def test_remove_contest(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock], mock_db_session: AsyncMock
    ) -> None:
        contest = MagicMock()
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = contest
        repos["votes"].has_votes_for_contest.return_value = False

        await service.remove_contest("admin-1", "e-1", "c-1")

        repos["contests"].remove_contest.assert_awaited_once_with(contest)
        mock_db_session.commit.assert_awaited_once()

    async def test_remove_contest_with_votes_refused(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.ACTIVE)
        repos["contests"].get_contest.return_value = MagicMock()
        repos["votes"].has_votes_for_contest.return_value = True

        with pytest.raises(Conflict):
            await service.remove_contest("admin-1", "e-1", "c-1")

        repos["contests"].remove_contest.assert_not_awaited()

    async def test_remove_contest_from_closed_election(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.CANCELLED)

        with pytest.raises(Conflict):
            await service.remove_contest("admin-1", "e-1", "c-1")

    async def test_update_candidate(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        candidate = MagicMock()
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = MagicMock()
        repos["contests"].get_candidate.return_value = candidate
        repos["votes"].has_votes_for_candidate.return_value = False

        result = await service.update_candidate("admin-1", "e-1", "c-1", "k-1", name="Alice Smith")

        assert result is candidate
        repos["contests"].update_candidate.assert_awaited_once_with(candidate, name="Alice Smith", party=None)

    async def test_update_candidate_with_votes_refused(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election(ElectionStatus.ACTIVE)
        repos["contests"].get_contest.return_value = MagicMock()
        repos["contests"].get_candidate.return_value = MagicMock()
        repos["votes"].has_votes_for_candidate.return_value = True

        with pytest.raises(Conflict):
            await service.update_candidate("admin-1", "e-1", "c-1", "k-1", name="Someone Else")

        repos["contests"].update_candidate.assert_not_awaited()

    async def test_update_missing_candidate(
        self, service: ElectionAdminService, repos: dict[str, AsyncMock]
    ) -> None:
        repos["elections"].get_by_id.return_value = _election()
        repos["contests"].get_contest.return_value = MagicMock()
        repos["contests"].get_candidate.return_value = None

        with pytest.raises(CandidateNotFound):
            await service.update_candidate("admin-1", "e-1", "c-1", "k-1", party="Green")
