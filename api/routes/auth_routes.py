# =============================================================================
# IDENTITY API SCAFFOLD - AUTH ROUTES
# =============================================================================
# File: api/routes/auth_routes.py
# Description: Authentication endpoints (register, login, refresh, logout,
#              current user, cookie sign-in / sign-out)
# =============================================================================

from fastapi import APIRouter, Request, Response, status

from auth.schemas import (
    ApiResponse,
    AuthResponse,
    UserDto,
    RegisterRequest,
    LoginRequest,
    RefreshRequest,
)
from auth.dependencies import (
    AuthServiceDep,
    AuthContextDep,
    CurrentUser,
    ClientIP,
    UserAgent,
)
from session.manager import set_session_cookie, clear_session_cookie
from core.config import settings


router = APIRouter(prefix="/auth", tags=["Authentication"])


# =============================================================================
# REGISTRATION
# =============================================================================

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Create an account and receive an access/refresh token pair.",
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
    ip_address: ClientIP,
) -> AuthResponse:
    """
    Register a new user account.

    - **email**: Valid email address (unique)
    - **user_name**: Optional, defaults to the email
    - **password**: 8-100 characters satisfying the password policy
    - **confirm_password**: Must match password
    """
    return await auth_service.register(data, ip_address)


# =============================================================================
# LOGIN / REFRESH
# =============================================================================

@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate user",
    description="Login with email or user name and password to receive tokens.",
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
    ip_address: ClientIP,
) -> AuthResponse:
    """
    Returns:
    - **token**: Access token (extended lifetime with remember_me)
    - **refresh_token**: Single-use token for renewal
    - **expiration**: Access token expiry
    """
    return await auth_service.login(data, ip_address)


@router.post(
    "/refresh",
    response_model=AuthResponse,
    summary="Refresh access token",
    description="Exchange a refresh token for a new token pair.",
)
async def refresh_token(
    data: RefreshRequest,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    """
    Each refresh token works once; presenting a used token signs the user
    out everywhere.
    """
    return await auth_service.refresh(data.refresh_token)


# =============================================================================
# LOGOUT
# =============================================================================

@router.post(
    "/logout",
    response_model=ApiResponse,
    summary="Logout",
    description="Revoke refresh tokens and the presented access token or session.",
)
async def logout(
    response: Response,
    context: AuthContextDep,
    auth_service: AuthServiceDep,
) -> ApiResponse:
    await auth_service.logout(context.user, context.token)

    if context.via_cookie:
        await auth_service.cookie_logout(context.session_token)
        clear_session_cookie(response)

    return ApiResponse(message="Logout successful")


# =============================================================================
# CURRENT USER
# =============================================================================

@router.get(
    "/me",
    response_model=ApiResponse[UserDto],
    summary="Get current user",
    description="Profile of the authenticated caller (bearer token or cookie).",
)
async def me(user: CurrentUser) -> ApiResponse[UserDto]:
    return ApiResponse[UserDto].ok(UserDto.from_user(user), "User retrieved successfully")


# =============================================================================
# COOKIE SESSIONS
# =============================================================================

@router.post(
    "/cookie/login",
    response_model=AuthResponse,
    summary="Cookie login",
    description="Authenticate and receive an HttpOnly session cookie instead of tokens.",
)
async def cookie_login(
    data: LoginRequest,
    response: Response,
    auth_service: AuthServiceDep,
    ip_address: ClientIP,
    user_agent: UserAgent,
) -> AuthResponse:
    result, cookie_token, session_obj = await auth_service.cookie_login(
        data,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    set_session_cookie(
        response,
        cookie_token,
        expires_at=result.expiration,
        persistent=session_obj.is_persistent,
    )
    return result


@router.post(
    "/cookie/logout",
    response_model=ApiResponse,
    summary="Cookie logout",
    description="End the cookie session and delete the cookie.",
)
async def cookie_logout(
    request: Request,
    response: Response,
    context: AuthContextDep,
    auth_service: AuthServiceDep,
) -> ApiResponse:
    await auth_service.cookie_logout(request.cookies.get(settings.session_cookie_name))
    clear_session_cookie(response)

    return ApiResponse(message="Logout successful")
