"""Authentication API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_current_user, get_db
from finpyme.models.user import User
from finpyme.schemas.user import AuthResponse, UserLogin, UserRegister, UserResponse
from finpyme.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    return await AuthService(db).register(data)


@router.post("/login", response_model=AuthResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    return await AuthService(db).login(data)


@router.get("/me", response_model=UserResponse)
async def auth_me(user: User = Depends(get_current_user)):
    """Return the user the bearer token belongs to."""
    return user
