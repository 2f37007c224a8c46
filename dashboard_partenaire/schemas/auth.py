"""
Schémas Pydantic pour l'authentification des administrateurs partenaires.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AdminUserResponse(BaseModel):
    """Profil de l'administrateur connecté."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    display_name: str
    role: str
    partenaire_id: Optional[str]
    active: bool
    require_password_change: bool
