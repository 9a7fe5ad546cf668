"""
Tests for token handling and vote hashing.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from core.config import settings
from core.security import (
    GENESIS_HASH,
    TOKEN_AUDIENCE,
    TOKEN_ISSUER,
    compute_ballot_hash,
    compute_vote_hash,
    create_access_token,
    decode_token,
)

WHEN = datetime(2026, 3, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)


def _vote_fields(**overrides):
    fields = {
        "vote_id": "v-1",
        "sequence": 1,
        "session_id": "s-1",
        "election_id": "e-1",
        "contest_id": "c-1",
        "voter_id": "u-1",
        "candidate_id": "k-1",
        "vote_timestamp": WHEN,
        "previous_vote_hash": GENESIS_HASH,
    }
    fields.update(overrides)
    return fields


@pytest.mark.unit
class TestAccessTokens:
    def test_round_trip_claims(self) -> None:
        token = create_access_token("user-1", roles=["Admin"], email="a@example.com")

        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "user-1"
        assert payload["roles"] == ["Admin"]
        assert payload["email"] == "a@example.com"
        assert payload["iss"] == TOKEN_ISSUER

    def test_expired_token_rejected(self) -> None:
        token = create_access_token("user-1", expires_delta=timedelta(seconds=-5))

        assert decode_token(token) is None

    def test_wrong_secret_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "user-1", "type": "access", "iss": TOKEN_ISSUER, "aud": TOKEN_AUDIENCE},
            "not-the-secret",
            algorithm=settings.JWT_ALGORITHM,
        )

        assert decode_token(token) is None

    def test_wrong_type_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "user-1", "type": "refresh", "iss": TOKEN_ISSUER, "aud": TOKEN_AUDIENCE},
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        assert decode_token(token) is None
        assert decode_token(token, expected_type=None) is not None

    def test_garbage_rejected(self) -> None:
        assert decode_token("not-a-jwt") is None


@pytest.mark.unit
class TestVoteHash:
    def test_genesis_is_all_zero(self) -> None:
        assert GENESIS_HASH == "0" * 64

    def test_deterministic_sha256_hex(self) -> None:
        first = compute_vote_hash(**_vote_fields())

        assert first == compute_vote_hash(**_vote_fields())
        assert len(first) == 64
        int(first, 16)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("candidate_id", "k-2"),
            ("contest_id", "c-2"),
            ("voter_id", "u-2"),
            ("sequence", 2),
            ("previous_vote_hash", "f" * 64),
            ("vote_timestamp", WHEN + timedelta(microseconds=1)),
        ],
    )
    def test_every_field_is_covered(self, field: str, value) -> None:
        assert compute_vote_hash(**_vote_fields()) != compute_vote_hash(**_vote_fields(**{field: value}))

    def test_timestamp_timezone_normalized(self) -> None:
        naive = WHEN.replace(tzinfo=None)
        shifted = WHEN.astimezone(timezone(timedelta(hours=5)))

        expected = compute_vote_hash(**_vote_fields())
        assert compute_vote_hash(**_vote_fields(vote_timestamp=naive)) == expected
        assert compute_vote_hash(**_vote_fields(vote_timestamp=shifted)) == expected


@pytest.mark.unit
class TestBallotHash:
    def test_pick_order_within_contest_ignored(self) -> None:
        common = {"session_id": "s", "election_id": "e", "voter_id": "u", "timestamp": WHEN}

        first = compute_ballot_hash(selections={"c": ["b", "a"]}, **common)
        second = compute_ballot_hash(selections={"c": ["a", "b"]}, **common)

        assert first == second

    def test_different_picks_differ(self) -> None:
        common = {"session_id": "s", "election_id": "e", "voter_id": "u", "timestamp": WHEN}

        assert compute_ballot_hash(selections={"c": ["a"]}, **common) != compute_ballot_hash(
            selections={"c": ["b"]}, **common
        )
