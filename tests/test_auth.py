# tests/test_auth.py
"""Tests for challenge/response authentication."""

from __future__ import annotations

import time

import fakeredis
import pytest
from fastapi import status
from jose import jwt

from parley.core import security
from parley.core.settings import settings
from parley.models import User
from parley.services.replay import ReplayProtectionService


def _issue_challenge(client, pubkey_b64: str, intent: str) -> str:
    response = client.post(
        "/api/v1/auth/challenge",
        json={"pubkey": pubkey_b64, "intent": intent},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["expires_in"] == settings.auth_challenge_ttl_seconds
    return data["challenge"]


def _proof(identity, challenge_b64: str) -> dict[str, str]:
    signature = identity["private_key"].sign(security.decode_b64(challenge_b64)).signature
    return {"challenge": challenge_b64, "signature": security.encode_b64(signature)}


def _register(client, identity, username: str = "newcomer"):
    challenge = _issue_challenge(client, identity["pubkey_b64"], "register")
    return client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "pubkey": identity["pubkey_b64"],
            "proof": _proof(identity, challenge),
        },
    )


def test_register_and_login(client, db_session, identity) -> None:
    response = _register(client, identity)
    assert response.status_code == status.HTTP_201_CREATED
    user_id = response.json()["id"]
    assert response.json()["username"] == "newcomer"

    user = db_session.get(User, user_id)
    assert user.pubkey == identity["pubkey_bytes"]
    assert user.role == "regular"

    challenge = _issue_challenge(client, identity["pubkey_b64"], "login")
    response = client.post(
        "/api/v1/auth/login",
        json={"pubkey": identity["pubkey_b64"], "proof": _proof(identity, challenge)},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"

    claims = jwt.decode(data["access_token"], settings.secret_key, algorithms=[settings.jwt_algorithm])
    assert claims["sub"] == str(user_id)

    me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["username"] == "newcomer"


def test_register_accepts_hex_pubkey(client, identity) -> None:
    challenge = _issue_challenge(client, identity["pubkey_bytes"].hex(), "register")
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "hexuser",
            "pubkey": identity["pubkey_bytes"].hex(),
            "proof": _proof(identity, challenge),
        },
    )
    assert response.status_code == status.HTTP_201_CREATED


def test_register_duplicate_username(client, test_user, identity) -> None:
    response = _register(client, identity, username=test_user.username)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_register_invalid_username(client, identity) -> None:
    response = _register(client, identity, username="no spaces allowed")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_register_invalid_key(client) -> None:
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "badkey",
            "pubkey": "invalid_key",
            "proof": {"challenge": "AAAA", "signature": "AAAA"},
        },
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Invalid public key format" in response.json()["detail"]


def test_register_with_wrong_signature(client, identity) -> None:
    from nacl.signing import SigningKey

    challenge = _issue_challenge(client, identity["pubkey_b64"], "register")
    forged = SigningKey.generate().sign(security.decode_b64(challenge)).signature
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "forger",
            "pubkey": identity["pubkey_b64"],
            "proof": {"challenge": challenge, "signature": security.encode_b64(forged)},
        },
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_challenge_cannot_register(client, identity) -> None:
    challenge = _issue_challenge(client, identity["pubkey_b64"], "login")
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "wrongintent",
            "pubkey": identity["pubkey_b64"],
            "proof": _proof(identity, challenge),
        },
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "mismatch" in response.json()["detail"]


def test_login_unknown_key(client, identity) -> None:
    challenge = _issue_challenge(client, identity["pubkey_b64"], "login")
    response = client.post(
        "/api/v1/auth/login",
        json={"pubkey": identity["pubkey_b64"], "proof": _proof(identity, challenge)},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_register_username_differing_only_in_case(client, test_user, identity) -> None:
    response = _register(client, identity, username=test_user.username.capitalize())
    assert response.status_code == status.HTTP_409_CONFLICT


def test_login_proof_is_single_use(client, identity) -> None:
    assert _register(client, identity).status_code == status.HTTP_201_CREATED

    challenge = _issue_challenge(client, identity["pubkey_b64"], "login")
    body = {"pubkey": identity["pubkey_b64"], "proof": _proof(identity, challenge)}

    first = client.post("/api/v1/auth/login", json=body)
    assert first.status_code == status.HTTP_200_OK

    second = client.post("/api/v1/auth/login", json=body)
    assert second.status_code == status.HTTP_401_UNAUTHORIZED
    assert second.json()["detail"] == "Challenge has already been used"

    fresh = _issue_challenge(client, identity["pubkey_b64"], "login")
    response = client.post(
        "/api/v1/auth/login",
        json={"pubkey": identity["pubkey_b64"], "proof": _proof(identity, fresh)},
    )
    assert response.status_code == status.HTTP_200_OK


def test_failed_signature_does_not_spend_challenge(client, identity) -> None:
    from nacl.signing import SigningKey

    challenge = _issue_challenge(client, identity["pubkey_b64"], "register")
    forged = SigningKey.generate().sign(security.decode_b64(challenge)).signature
    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "newcomer",
            "pubkey": identity["pubkey_b64"],
            "proof": {"challenge": challenge, "signature": security.encode_b64(forged)},
        },
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = client.post(
        "/api/v1/auth/register",
        json={
            "username": "newcomer",
            "pubkey": identity["pubkey_b64"],
            "proof": _proof(identity, challenge),
        },
    )
    assert response.status_code == status.HTTP_201_CREATED


class TestReplayProtection:
    def test_register_then_detect(self, replay_service) -> None:
        assert not replay_service.is_replay("ab", "01")
        assert replay_service.register_replay("ab", "01")
        assert replay_service.is_replay("ab", "01")
        assert not replay_service.is_replay("cd", "01")

    def test_second_registration_loses(self, replay_service) -> None:
        assert replay_service.register_replay("ab", "01")
        assert not replay_service.register_replay("ab", "01")

    def test_entries_expire_with_challenge(self) -> None:
        client = fakeredis.FakeRedis()
        service = ReplayProtectionService(client)
        service.register_replay("ab", "01")
        assert 0 < client.ttl("replay:ab:01") <= settings.auth_challenge_ttl_seconds


class TestChallenges:
    def test_round_trip(self, identity) -> None:
        challenge = security.issue_auth_challenge("login", identity["pubkey_bytes"])
        raw = security.validate_auth_challenge("login", identity["pubkey_bytes"], challenge)
        assert len(raw) == security.CHALLENGE_PAYLOAD_BYTES

    def test_expired(self, identity) -> None:
        issued = time.time() - settings.auth_challenge_ttl_seconds - 10
        challenge = security.issue_auth_challenge("login", identity["pubkey_bytes"], now=issued)
        with pytest.raises(ValueError, match="expired"):
            security.validate_auth_challenge("login", identity["pubkey_bytes"], challenge)

    def test_bound_to_key(self, identity) -> None:
        other = bytes(32)
        challenge = security.issue_auth_challenge("login", identity["pubkey_bytes"])
        with pytest.raises(ValueError, match="mismatch"):
            security.validate_auth_challenge("login", other, challenge)

    def test_truncated(self, identity) -> None:
        with pytest.raises(ValueError, match="size"):
            security.validate_auth_challenge("login", identity["pubkey_bytes"], "AAAA")


class TestTokens:
    def test_invalid_token_is_rejected(self, client) -> None:
        response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_token_for_deleted_user(self, client) -> None:
        token = security.create_access_token(424242)
        response = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_optional_user_with_bad_token_fails(self, client, public_post) -> None:
        response = client.get(
            f"/api/v1/posts/{public_post.id}",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_get_user_profile(client, moderator) -> None:
    response = client.get(f"/api/v1/users/{moderator.username}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"id": moderator.id, "username": "mod_mia", "role": "moderator"}
    assert client.get("/api/v1/users/nobody").status_code == status.HTTP_404_NOT_FOUND
