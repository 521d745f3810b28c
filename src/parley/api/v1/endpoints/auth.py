"""Authentication endpoints for the Parley API."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_

from parley.api.v1.dependencies import SessionDep
from parley.core.security import (
    NONCE_BYTES,
    create_access_token,
    decode_b64,
    decode_pubkey,
    issue_auth_challenge,
    validate_auth_challenge,
    verify_signature,
)
from parley.core.settings import settings
from parley.models import User
from parley.schemas.user import (
    ChallengeRequest,
    ChallengeResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SignatureProof,
)
from parley.services.replay import ReplayProtectionService, get_replay_service

router = APIRouter(prefix="/auth", tags=["authentication"])
logger = logging.getLogger(__name__)


def _decode_pubkey_or_400(pubkey: str) -> bytes:
    try:
        return decode_pubkey(pubkey)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err


def get_replay_service_dep() -> ReplayProtectionService:
    return get_replay_service()


ReplayServiceDep = Annotated[ReplayProtectionService, Depends(get_replay_service_dep)]


def _verify_proof(
    intent: str,
    pubkey_bytes: bytes,
    proof: SignatureProof,
    replay_service: ReplayProtectionService,
) -> None:
    """Check the challenge is ours, fresh and unused, and that the key signed it.

    A verified challenge is spent: presenting it again is rejected.
    """
    try:
        challenge_bytes = validate_auth_challenge(intent, pubkey_bytes, proof.challenge)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err

    pubkey_hex = pubkey_bytes.hex()
    nonce_hex = challenge_bytes[:NONCE_BYTES].hex()
    if replay_service.is_replay(pubkey_hex, nonce_hex):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Challenge has already been used",
        )

    try:
        signature_bytes = decode_b64(proof.signature)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid base64 encoding for proof.signature",
        ) from err

    if not verify_signature(pubkey_bytes, challenge_bytes, signature_bytes):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature for provided challenge",
        )

    # set-if-absent, so two concurrent uses cannot both pass
    if not replay_service.register_replay(pubkey_hex, nonce_hex):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Challenge has already been used",
        )


@router.post(
    "/challenge",
    summary="Issue a signature challenge",
    response_model=ChallengeResponse,
)
async def issue_challenge(payload: ChallengeRequest) -> ChallengeResponse:
    """Provide clients with a challenge to sign for register/login flows."""
    pubkey_bytes = _decode_pubkey_or_400(payload.pubkey)
    return ChallengeResponse(
        challenge=issue_auth_challenge(payload.intent, pubkey_bytes),
        expires_in=settings.auth_challenge_ttl_seconds,
    )


@router.post(
    "/register",
    summary="Register a new account",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
)
async def register_user(
    payload: RegisterRequest, db: SessionDep, replay_service: ReplayServiceDep
) -> RegisterResponse:
    """Create an account bound to an Ed25519 public key.

    Usernames are unique regardless of case.
    """
    pubkey_bytes = _decode_pubkey_or_400(payload.pubkey)
    _verify_proof("register", pubkey_bytes, payload.proof, replay_service)

    existing = db.query(User).filter(
        or_(
            func.lower(User.username) == payload.username.lower(),
            User.pubkey == pubkey_bytes,
        )
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or public key already registered",
        )

    user = User(username=payload.username, pubkey=pubkey_bytes)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return RegisterResponse(id=user.id, username=user.username)


@router.post(
    "/login",
    summary="Authenticate with Ed25519 key",
    status_code=status.HTTP_200_OK,
    response_model=LoginResponse,
)
async def login_user(
    payload: LoginRequest, db: SessionDep, replay_service: ReplayServiceDep
) -> LoginResponse:
    """Authenticate by providing a signed challenge response."""
    pubkey_bytes = _decode_pubkey_or_400(payload.pubkey)

    user = db.query(User).filter(User.pubkey == pubkey_bytes).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    _verify_proof("login", pubkey_bytes, payload.proof, replay_service)

    return LoginResponse(
        access_token=create_access_token(user.id),
        token_type="bearer",
    )
