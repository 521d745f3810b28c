"""Challenge/response authentication built on Ed25519 primitives."""

from __future__ import annotations

import base64
import secrets
import time
from datetime import UTC, datetime, timedelta

import blake3
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from jose import jwt

from parley.core.settings import settings

PUBKEY_LENGTH_BYTES = 32
NONCE_BYTES = 16
TIMESTAMP_BYTES = 8
MAC_BYTES = 32
CHALLENGE_PAYLOAD_BYTES = NONCE_BYTES + TIMESTAMP_BYTES + MAC_BYTES


def encode_b64(data: bytes) -> str:
    """Encode bytes as URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def decode_b64(data: str) -> bytes:
    """Decode a URL-safe base64 string, accepting omitted padding."""
    padding = "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(data + padding)
    except Exception as err:
        raise ValueError(f"Invalid base64 encoding: {err}") from err


def decode_pubkey(pubkey_encoded: str) -> bytes:
    """Validate and decode an Ed25519 public key given as base64 or hex."""
    cleaned = pubkey_encoded.strip()
    errors: list[str] = []
    for decoder in (decode_b64, bytes.fromhex):
        try:
            result = decoder(cleaned)
        except ValueError as err:
            errors.append(str(err))
            continue
        if len(result) != PUBKEY_LENGTH_BYTES:
            errors.append("Ed25519 public keys must be 32 bytes")
            continue
        return result
    joined = "; ".join(errors) if errors else "unknown decoding error"
    raise ValueError(f"Invalid public key format: {joined}")


def verify_signature(pubkey_bytes: bytes, message: bytes, signature: bytes) -> bool:
    """Return True if `signature` is a valid Ed25519 signature of `message`."""
    try:
        pubkey = Ed25519PublicKey.from_public_bytes(pubkey_bytes)
        pubkey.verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def _challenge_mac(intent: str, pubkey_bytes: bytes, nonce: bytes, issued_at: bytes) -> bytes:
    payload = b"|".join(
        (
            intent.encode(),
            pubkey_bytes,
            nonce,
            issued_at,
            settings.secret_key.encode(),
        )
    )
    return blake3.blake3(payload).digest()


def issue_auth_challenge(intent: str, pubkey_bytes: bytes, now: float | None = None) -> str:
    """Return a base64 challenge bound to the intent, key and issue time.

    The challenge is `nonce || issued_at || mac`, so the server can validate it
    later without storing anything.
    """
    if not intent:
        raise ValueError("Challenge intent must be provided")

    nonce = secrets.token_bytes(NONCE_BYTES)
    issued_at = int(now if now is not None else time.time()).to_bytes(TIMESTAMP_BYTES, "big")
    mac = _challenge_mac(intent, pubkey_bytes, nonce, issued_at)
    return encode_b64(nonce + issued_at + mac)


def validate_auth_challenge(
    intent: str,
    pubkey_bytes: bytes,
    challenge_b64: str,
    now: float | None = None,
) -> bytes:
    """Validate a previously issued challenge and return its raw bytes.

    Raises:
        ValueError: If the challenge is malformed, forged or expired.
    """
    challenge = decode_b64(challenge_b64)
    if len(challenge) != CHALLENGE_PAYLOAD_BYTES:
        raise ValueError("Invalid challenge payload size")

    nonce = challenge[:NONCE_BYTES]
    issued_at = challenge[NONCE_BYTES:NONCE_BYTES + TIMESTAMP_BYTES]
    supplied_mac = challenge[NONCE_BYTES + TIMESTAMP_BYTES:]

    expected_mac = _challenge_mac(intent, pubkey_bytes, nonce, issued_at)
    if not secrets.compare_digest(supplied_mac, expected_mac):
        raise ValueError("Challenge signature mismatch")

    current = int(now if now is not None else time.time())
    age = current - int.from_bytes(issued_at, "big")
    if age < 0 or age > settings.auth_challenge_ttl_seconds:
        raise ValueError("Challenge has expired")

    return challenge


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt
