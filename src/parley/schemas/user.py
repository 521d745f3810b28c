"""User and authentication Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from parley.utils.text import USERNAME_RE


class SignatureProof(BaseModel):
    """Proof that the client controls the submitted public key."""

    challenge: str = Field(..., description="Opaque challenge string (base64 encoded)")
    signature: str = Field(..., description="Signature over the challenge")


class ChallengeRequest(BaseModel):
    """Request to obtain a registration/login challenge."""

    pubkey: str = Field(..., description="Base64-encoded Ed25519 public key (32 bytes)")
    intent: Literal["register", "login"] = Field(..., description="Handshake intent")


class ChallengeResponse(BaseModel):
    """Challenge payload returned to clients before authentication."""

    challenge: str = Field(..., description="Base64 challenge that must be signed")
    expires_in: int = Field(..., description="Seconds until the challenge expires")


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(..., description="Unique username, 3-20 characters")
    pubkey: str = Field(..., description="Base64-encoded Ed25519 public key (32 bytes)")
    proof: SignatureProof

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Usernames use letters, digits, dots, dashes and underscores."""
        if not USERNAME_RE.match(v):
            raise ValueError("Username must be 3-20 characters of letters, digits, '.', '-' or '_'")
        return v


class RegisterResponse(BaseModel):
    """Registration response."""

    id: int
    username: str


class LoginRequest(BaseModel):
    """Schema for login submissions."""

    pubkey: str = Field(..., description="Base64-encoded Ed25519 public key (32 bytes)")
    proof: SignatureProof


class LoginResponse(BaseModel):
    """Response returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(..., description="Token type (typically 'bearer')")


class UserResponse(BaseModel):
    """Public profile of a user."""

    id: int
    username: str
    role: str

    model_config = ConfigDict(from_attributes=True)
