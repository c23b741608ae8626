"""User schemas for request/response validation."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, field_validator


class UserRegister(BaseModel):
    username: str
    email: EmailStr
    password: str
    company_name: str
    tax_id: str | None = None
    preferred_currency: Literal["ARS", "USD"] = "ARS"
    preferred_dollar_type: Literal["oficial", "blue", "mep"] = "oficial"

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("La contraseña debe tener al menos 6 caracteres")
        return v

    @field_validator("username", "company_name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Campo requerido")
        return v.strip()


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("La contraseña debe tener al menos 6 caracteres")
        return v


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    company_name: str
    tax_id: str | None = None
    preferred_currency: str
    preferred_dollar_type: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned on register and login."""

    token: str
    token_type: str = "bearer"
    user: UserResponse
