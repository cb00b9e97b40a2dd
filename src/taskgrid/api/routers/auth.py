"""Routes handling registration, login and the caller's own profile."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from ...core.config import Settings
from ...core.security import GeneratedToken
from ...deps import CurrentUserDependency, DatabaseSessionDependency, SettingsDependency
from ...models import User
from ...schemas import LoginRequest, LoginResponse, ProfileUpdate, RegisterRequest, UserPublic
from ...services import AuthService, UserService

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: GeneratedToken, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token.token,
        max_age=token.max_age,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_same_site,  # type: ignore[arg-type]
    )


def _login_response(user: User, token: GeneratedToken, settings: Settings) -> LoginResponse:
    return LoginResponse(
        token=token.token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserPublic.model_validate(user),
    )


@router.post(
    "/register",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    payload: RegisterRequest,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> UserPublic:
    user = await AuthService(session, settings).register_user(payload)
    return UserPublic.model_validate(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate using email and password",
)
async def login(
    payload: LoginRequest,
    response: Response,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> LoginResponse:
    service = AuthService(session, settings)
    user = await service.authenticate_user(payload.email, payload.password)
    token = service.issue_token(user)
    _set_auth_cookie(response, token, settings)
    return _login_response(user, token, settings)


@router.get("/profile", response_model=UserPublic, summary="Return the authenticated user")
async def read_profile(current_user: CurrentUserDependency) -> UserPublic:
    return UserPublic.model_validate(current_user)


@router.put(
    "/profile",
    response_model=LoginResponse,
    summary="Update the authenticated user's profile",
)
async def update_profile(
    payload: ProfileUpdate,
    response: Response,
    current_user: CurrentUserDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> LoginResponse:
    user = await UserService(session, settings).update_profile(current_user, payload)
    token = AuthService(session, settings).issue_token(user)
    _set_auth_cookie(response, token, settings)
    return _login_response(user, token, settings)
