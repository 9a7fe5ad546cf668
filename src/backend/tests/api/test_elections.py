"""
Tests for voter-facing election endpoints.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from core.exceptions import (
    AlreadyVoted,
    ElectionNotFound,
    NotEligible,
    StorageFailure,
    TooManySelections,
)
from models.election import Election, ElectionStatus
from models.eligibility import EligibilityStatus
from services.results_service import CandidateResult, ContestResult, ElectionResults
from services.vote_casting import BallotReceipt

ELECTION_ID = "33333333-3333-4333-8333-333333333333"
CONTEST_ID = "44444444-4444-4444-8444-444444444444"
CANDIDATE_ID = "55555555-5555-4555-8555-555555555555"
WHEN = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

BALLOT = {"selections": [{"contestId": CONTEST_ID, "candidateIds": [CANDIDATE_ID]}]}


def _election(status: ElectionStatus = ElectionStatus.ACTIVE) -> Election:
    return Election(
        id=ELECTION_ID,
        title="Board Election",
        start_date=WHEN,
        end_date=datetime(2026, 3, 2, tzinfo=timezone.utc),
        status=status.value,
        created_at=WHEN,
    )


@pytest.fixture
def casting_service():
    with patch("api.v1.elections.VoteCastingService") as service_class:
        service = service_class.return_value
        service.cast_ballot = AsyncMock(
            return_value=BallotReceipt(
                session_id="session-1",
                election_id=ELECTION_ID,
                ballot_hash="b" * 64,
                vote_hash="v" * 64,
                records=1,
                timestamp=WHEN,
            )
        )
        yield service


@pytest.mark.unit
class TestCastBallotEndpoint:
    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.post(f"/api/v1/elections/{ELECTION_ID}/vote", json=BALLOT)

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_success_returns_receipt(
        self, client: AsyncClient, as_user, voter_user, casting_service
    ) -> None:
        as_user(voter_user)

        response = await client.post(f"/api/v1/elections/{ELECTION_ID}/vote", json=BALLOT)

        assert response.status_code == 201
        data = response.json()
        assert data["sessionId"] == "session-1"
        assert data["voteHash"] == "v" * 64
        assert data["ballotHash"] == "b" * 64
        assert data["records"] == 1

        args = casting_service.cast_ballot.call_args
        assert args[0][0] == ELECTION_ID
        assert args[0][1] == voter_user.id
        assert args[0][2].selections == {CONTEST_ID: (CANDIDATE_ID,)}

    async def test_snake_case_body_accepted(
        self, client: AsyncClient, as_user, voter_user, casting_service
    ) -> None:
        as_user(voter_user)
        body = {"selections": [{"contest_id": CONTEST_ID, "candidate_ids": [CANDIDATE_ID]}]}

        response = await client.post(f"/api/v1/elections/{ELECTION_ID}/vote", json=body)

        assert response.status_code == 201

    @pytest.mark.parametrize(
        "error, status_code, code",
        [
            (AlreadyVoted(), 400, "ALREADY_VOTED"),
            (TooManySelections(), 400, "TOO_MANY_SELECTIONS"),
            (NotEligible(), 403, "NOT_ELIGIBLE"),
            (ElectionNotFound(), 404, "ELECTION_NOT_FOUND"),
            (StorageFailure(), 500, "STORAGE_FAILURE"),
        ],
    )
    async def test_domain_errors_rendered(
        self, client: AsyncClient, as_user, voter_user, casting_service, error, status_code, code
    ) -> None:
        as_user(voter_user)
        casting_service.cast_ballot.side_effect = error

        response = await client.post(f"/api/v1/elections/{ELECTION_ID}/vote", json=BALLOT)

        assert response.status_code == status_code
        assert response.json() == {"error": code, "detail": error.message}

    async def test_contest_listed_twice_left_to_casting_service(
        self, client: AsyncClient, as_user, voter_user, casting_service
    ) -> None:
        as_user(voter_user)
        casting_service.cast_ballot.side_effect = NotEligible()
        body = {
            "selections": [
                {"contestId": CONTEST_ID, "candidateIds": [CANDIDATE_ID]},
                {"contestId": CONTEST_ID, "candidateIds": []},
            ]
        }

        response = await client.post(f"/api/v1/elections/{ELECTION_ID}/vote", json=body)

        assert response.status_code == 403
        assert response.json()["error"] == "NOT_ELIGIBLE"
        ballot = casting_service.cast_ballot.call_args[0][2]
        assert ballot.repeated_contests == (CONTEST_ID,)

    async def test_malformed_election_id(self, client: AsyncClient, as_user, voter_user) -> None:
        as_user(voter_user)

        response = await client.post("/api/v1/elections/not-a-uuid/vote", json=BALLOT)

        assert response.status_code == 422


@pytest.mark.unit
class TestBallotView:
    async def test_ballot_view_reports_voting_state(self, client: AsyncClient, as_user, voter_user) -> None:
        as_user(voter_user)
        with (
            patch("api.v1.elections.ElectionRepository") as elections,
            patch("api.v1.elections.ContestRepository") as contests,
            patch("api.v1.elections.EligibilityRepository") as eligibility,
            patch("api.v1.elections.VoteRepository") as votes,
        ):
            elections.return_value.get_by_id = AsyncMock(return_value=_election())
            contests.return_value.list_contests = AsyncMock(return_value=[])
            eligibility.return_value.get_status = AsyncMock(return_value=EligibilityStatus.VOTED)
            votes.return_value.selections_for_voter = AsyncMock(return_value={CONTEST_ID: [CANDIDATE_ID]})

            response = await client.get(f"/api/v1/elections/{ELECTION_ID}/contests")

        assert response.status_code == 200
        data = response.json()
        assert data["isEligible"] is False
        assert data["hasVoted"] is True
        assert data["userVotes"] == {CONTEST_ID: [CANDIDATE_ID]}
        assert data["election"]["title"] == "Board Election"

    async def test_draft_hidden_from_voters(self, client: AsyncClient, as_user, voter_user) -> None:
        as_user(voter_user)
        with patch("api.v1.elections.ElectionRepository") as elections:
            elections.return_value.get_by_id = AsyncMock(return_value=_election(ElectionStatus.DRAFT))

            response = await client.get(f"/api/v1/elections/{ELECTION_ID}")

        assert response.status_code == 404


@pytest.mark.unit
class TestResultsEndpoint:
    async def test_results_rendered(self, client: AsyncClient, as_user, voter_user) -> None:
        as_user(voter_user)
        results = ElectionResults(
            election_id=ELECTION_ID,
            title="Board Election",
            status="Completed",
            eligible_voters=4,
            voters_participated=3,
            turnout_percentage=75.0,
            contests=[
                ContestResult(
                    contest_id=CONTEST_ID,
                    title="President",
                    max_selections=1,
                    total_votes=3,
                    candidates=[CandidateResult(CANDIDATE_ID, "A", None, 3, 100.0, True)],
                )
            ],
        )
        with patch("api.v1.elections.ResultsService") as service_class:
            service_class.return_value.get_results = AsyncMock(return_value=results)

            response = await client.get(f"/api/v1/elections/{ELECTION_ID}/results")

        assert response.status_code == 200
        data = response.json()
        assert data["turnoutPercentage"] == 75.0
        assert data["contests"][0]["candidates"][0]["isWinner"] is True
        service_class.return_value.get_results.assert_awaited_once_with(ELECTION_ID, is_admin=False)

    async def test_list_elections(self, client: AsyncClient, as_user, voter_user) -> None:
        as_user(voter_user)
        with patch("api.v1.elections.ElectionRepository") as elections:
            elections.return_value.list_for_user = AsyncMock(return_value=[_election()])

            response = await client.get("/api/v1/elections")

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [ELECTION_ID]
        elections.return_value.list_for_user.assert_awaited_once_with(voter_user.id, is_admin=False)
