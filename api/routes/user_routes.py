# =============================================================================
# IDENTITY API SCAFFOLD - USER ROUTES
# =============================================================================
# File: api/routes/user_routes.py
# Description: Profile self-service and user administration endpoints
# =============================================================================

from typing import List

from fastapi import APIRouter

from auth.schemas import (
    ApiResponse,
    UserDto,
    UpdateUserRequest,
    ChangePasswordRequest,
)
from auth.dependencies import (
    UserServiceDep,
    CurrentUser,
    AdminUser,
)
from core.config import settings
from core.exceptions import InsufficientPermissionsError


router = APIRouter(prefix="/users", tags=["Users"])


# =============================================================================
# CURRENT USER PROFILE
# =============================================================================

@router.put(
    "/me",
    response_model=ApiResponse[UserDto],
    summary="Update current user profile",
    description="Update first name, last name and phone number.",
)
async def update_current_user_profile(
    data: UpdateUserRequest,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserDto]:
    user = await user_service.update_profile(user, data)
    return ApiResponse[UserDto].ok(UserDto.from_user(user), "Profile updated successfully")


@router.put(
    "/me/password",
    response_model=ApiResponse,
    summary="Change password",
    description="Change the password after verifying the current one.",
)
async def change_password(
    data: ChangePasswordRequest,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> ApiResponse:
    await user_service.change_password(user, data)
    return ApiResponse(message="Password changed successfully")


# =============================================================================
# LOOKUP
# =============================================================================

@router.get(
    "",
    response_model=ApiResponse[List[UserDto]],
    summary="List users",
    description="All active users (Admin only).",
)
async def list_users(
    admin: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse[List[UserDto]]:
    users = await user_service.list_users()
    return ApiResponse[List[UserDto]].ok(
        [UserDto.from_user(u) for u in users],
        "Users retrieved successfully",
    )


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserDto],
    summary="Get user",
    description="A user's profile; callers may read their own, Admins any.",
)
async def get_user(
    user_id: str,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> ApiResponse[UserDto]:
    if user.id != user_id and not user.has_role(settings.admin_role):
        raise InsufficientPermissionsError(required_role=settings.admin_role)

    target = await user_service.get_user(user_id)
    return ApiResponse[UserDto].ok(UserDto.from_user(target), "User retrieved successfully")


# =============================================================================
# ADMINISTRATION
# =============================================================================

@router.delete(
    "/{user_id}",
    response_model=ApiResponse,
    summary="Deactivate user",
    description="Deactivate an account and end its sessions (Admin only).",
)
async def deactivate_user(
    user_id: str,
    admin: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse:
    await user_service.deactivate_user(user_id)
    return ApiResponse(message="User deactivated successfully")


@router.post(
    "/{user_id}/roles/{role_name}",
    response_model=ApiResponse,
    summary="Add role",
    description="Grant a role to a user (Admin only).",
)
async def add_role(
    user_id: str,
    role_name: str,
    admin: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse:
    await user_service.add_role(user_id, role_name)
    return ApiResponse(message=f"Role '{role_name}' added successfully")


@router.delete(
    "/{user_id}/roles/{role_name}",
    response_model=ApiResponse,
    summary="Remove role",
    description="Remove a role from a user (Admin only).",
)
async def remove_role(
    user_id: str,
    role_name: str,
    admin: AdminUser,
    user_service: UserServiceDep,
) -> ApiResponse:
    await user_service.remove_role(user_id, role_name)
    return ApiResponse(message=f"Role '{role_name}' removed successfully")
