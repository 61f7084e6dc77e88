"""
Authentication Routes

POST /auth/register - Register a student or company account
POST /auth/login - Login and get JWT token
GET /auth/me - Get current account info
"""

from fastapi import APIRouter, Depends

from espacestage.core.auth import get_current_user
from espacestage.schemas.schemas import AuthData, Envelope, LoginRequest, MeData, RegisterRequest
from espacestage.services.account_service import AccountService, get_account_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=Envelope[AuthData], status_code=201)
def register(request: RegisterRequest, accounts: AccountService = Depends(get_account_service)):
    """
    Register a new student or company account.

    The profile row is created along with the account; admins cannot self-register.
    """
    data = accounts.register(request)
    return {"success": True, "message": "Registration successful", "data": data}


@router.post("/login", response_model=Envelope[AuthData])
def login(request: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    data = accounts.login(request.email, request.password, request.role)
    return {"success": True, "message": "Login successful", "data": data}


@router.get("/me", response_model=Envelope[MeData])
def me(user: dict = Depends(get_current_user), accounts: AccountService = Depends(get_account_service)):
    return {"success": True, "data": accounts.me(user["user_id"])}
