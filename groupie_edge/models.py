"""
Data Models Module

This module defines Pydantic models for request/response validation
and data serialization throughout the edge server.

Models are organized by functional area:
- Account models (registration and login payloads, user profile)
- Health check models
- Error models

Request models only describe the wire shape: missing fields decode to their
empty defaults and the semantic checks (non-empty names, password length,
positive id) live in ``auth.service.AuthService``.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, StrictInt

MAX_USER_ID = 2**63 - 1


# ============================================================================
# Account Models
# ============================================================================

class RegisterRequest(BaseModel):
    """Registration payload posted to /api/register."""
    model_config = ConfigDict(extra="ignore")

    nom: str = Field(default="", description="Last name")
    prenom: str = Field(default="", description="First name")
    sexe: str = Field(default="", description="Sex (M/F/Autre)")
    password: SecretStr = Field(default=SecretStr(""), description="Plaintext password, hashed before storage")


class LoginRequest(BaseModel):
    """Credentials posted to /api/login."""
    model_config = ConfigDict(extra="ignore")

    # JSON integers only, within the signed 64-bit column range
    id_utilisateur: StrictInt = Field(
        default=0,
        le=MAX_USER_ID,
        description="User identifier returned at registration",
    )
    password: SecretStr = Field(default=SecretStr(""), description="Plaintext password")


class UserProfile(BaseModel):
    """Public profile fields of a user. Never carries the password hash."""
    id_utilisateur: int = Field(..., description="User identifier")
    nom: str = Field(..., description="Last name")
    prenom: str = Field(..., description="First name")
    sexe: str = Field(..., description="Sex")


class RegisterResponse(BaseModel):
    message: str = Field(default="user created")
    id_utilisateur: int = Field(..., description="Generated user identifier")


class LoginResponse(BaseModel):
    message: str = Field(default="login ok")
    user: UserProfile


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    database: str = Field(..., description="Credential store state: up, disabled or unavailable")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: Optional[str] = Field(None, description="Human-readable error message")
