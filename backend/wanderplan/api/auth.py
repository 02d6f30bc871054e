from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from wanderplan.api.deps import get_current_user
from wanderplan.core.settings import settings
from wanderplan.models.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserSchema,
)
from wanderplan.services.auth_service import AuthService, CurrentUser, get_auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    summary="Register a new account",
)
def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),  # noqa: B008
) -> RegisterResponse:
    user = service.register(payload)
    return RegisterResponse(message="Registration successful", user=user)


@router.post("/login", response_model=AuthResponse, summary="Log in")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),  # noqa: B008
) -> AuthResponse:
    result = await service.login(payload, client_ip=_client_ip(request))
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=result.session.access_token,
        max_age=result.session.expires_in,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        path="/",
    )
    return result


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(
    response: Response,
    _: CurrentUser = Depends(get_current_user),  # noqa: B008
) -> MessageResponse:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserSchema, summary="Current user")
def read_me(user: CurrentUser = Depends(get_current_user)) -> UserSchema:  # noqa: B008
    return UserSchema(id=user.id, email=user.email)
