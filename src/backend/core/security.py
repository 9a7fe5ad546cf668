"""Security utilities for authentication and vote integrity.

Identity tokens are issued by the account service; this backend only needs to
verify them (and mint them for tooling and tests). Vote records are chained
with SHA-256 digests computed here.
"""

import hashlib
import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.config import settings

# Token issuer and audience for validation
TOKEN_ISSUER = "ballotline-api"
TOKEN_AUDIENCE = "ballotline-client"


def create_access_token(
    user_id: str,
    roles: list[str] | None = None,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT access token for a user."""
    now = datetime.now(timezone.utc)
    delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims: dict[str, Any] = {
        "sub": user_id,
        "roles": list(roles or []),
        "exp": now + delta,
        "iat": now,
        "type": "access",
        "iss": TOKEN_ISSUER,
        "aud": TOKEN_AUDIENCE,
        "jti": secrets.token_urlsafe(16),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str | None = "access") -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token to decode
        expected_type: If provided, validates the token type matches

    Returns:
        The decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=TOKEN_ISSUER,
            audience=TOKEN_AUDIENCE,
        )
    except JWTError:
        return None
    if expected_type and payload.get("type") != expected_type:
        return None
    return payload


# =============================================================================
# Vote hash chain
# =============================================================================

# previous_vote_hash of the very first vote record
GENESIS_HASH = "0" * 64


def _canonical_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _digest(payload: dict[str, Any]) -> str:
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(data.encode()).hexdigest()


def compute_vote_hash(
    *,
    vote_id: str,
    sequence: int,
    session_id: str,
    election_id: str,
    contest_id: str,
    voter_id: str,
    candidate_id: str,
    vote_timestamp: datetime,
    previous_vote_hash: str,
) -> str:
    """
    Compute the chained digest of a single vote record.

    Every stored field that identifies the pick is covered, together with the
    predecessor's hash, so editing any committed record (or reordering two)
    breaks every link after it.
    """
    return _digest(
        {
            "vote_id": vote_id,
            "sequence": sequence,
            "session_id": session_id,
            "election_id": election_id,
            "contest_id": contest_id,
            "voter_id": voter_id,
            "candidate_id": candidate_id,
            "vote_timestamp": _canonical_timestamp(vote_timestamp),
            "previous_vote_hash": previous_vote_hash,
        }
    )


def compute_ballot_hash(
    *,
    session_id: str,
    election_id: str,
    voter_id: str,
    selections: dict[str, list[str]],
    timestamp: datetime,
) -> str:
    """Digest of a whole ballot, returned to the voter as a receipt."""
    return _digest(
        {
            "session_id": session_id,
            "election_id": election_id,
            "voter_id": voter_id,
            "selections": {contest: sorted(picks) for contest, picks in selections.items()},
            "timestamp": _canonical_timestamp(timestamp),
        }
    )
