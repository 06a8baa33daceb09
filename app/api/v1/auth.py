from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from pymongo.errors import PyMongoError
from app.core.exceptions import AuthenticationError
from app.schemas.user import AuthResponse, LoginRequest, MeResponse, RegisterRequest, UserInDB, UserPublic
from app.services.auth import auth_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> UserInDB:
    """
    Resolve the bearer token to the calling user.

    A missing or invalid token, or a token whose user no longer exists,
    is answered with 401.
    """
    if not credentials:
        raise AuthenticationError("No token provided")

    user = await auth_service.resolve_token(credentials.credentials)
    if not user:
        raise AuthenticationError("Invalid or expired token")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[UserInDB]:
    """
    Optionally resolve the bearer token.
    Returns None if no usable token is provided or the user store is unreachable.
    """
    if not credentials:
        return None
    try:
        return await auth_service.resolve_token(credentials.credentials)
    except PyMongoError as e:
        logger.error(f"Could not resolve optional user: {e}")
        return None


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest):
    """Create an account on the free plan and return a bearer token."""
    user, token = await auth_service.register(request.email, request.password, request.name)
    return AuthResponse(
        message="Account created successfully",
        user=UserPublic.from_user(user),
        token=token
    )


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest):
    user, token = await auth_service.login(request.email, request.password)
    return AuthResponse(
        message="Login successful",
        user=UserPublic.from_user(user),
        token=token
    )


@router.get("/me", response_model=MeResponse)
async def get_me(user: UserInDB = Depends(get_current_user)):
    """Get current user information."""
    return MeResponse(user=UserPublic.from_user(user))


@router.post("/logout")
async def logout(user: UserInDB = Depends(get_current_user)):
    """Tokens are stateless; the extension drops its copy."""
    logger.info(f"User {user.id} logged out")
    return {"message": "Logged out successfully"}
