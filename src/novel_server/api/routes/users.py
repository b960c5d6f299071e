"""Account endpoints: registration, profile, admin listing, credential checks."""

from fastapi import APIRouter, Depends, HTTPException, Query

from novel_server.api.auth import get_current_user_id, get_optional_user_id
from novel_server.api.models import (
    CreateUserRequest,
    UpdateUserRequest,
    UserResponse,
    UserRole,
    VerifyCredentialsRequest,
)
from novel_server.api.routes.utils import patch_fields, to_http_exception
from novel_server.errors import PlatformError
from novel_server.services import accounts

router = APIRouter(tags=["users"])


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    request: CreateUserRequest,
    actor_id: int | None = Depends(get_optional_user_id),
):
    """Register an account. Anonymous callers may sign up as any non-admin role."""
    try:
        return accounts.register_user(
            request.username,
            request.email,
            request.password,
            role=request.role,
            actor_id=actor_id,
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    role: UserRole | None = None,
    is_active: bool | None = None,
    limit: int = Query(default=50, gt=0),
    offset: int = Query(default=0, ge=0),
    actor_id: int = Depends(get_current_user_id),
):
    """Admin-only account listing."""
    try:
        return accounts.list_users(
            actor_id, role=role, is_active=is_active, limit=limit, offset=offset
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/users/me", response_model=UserResponse)
async def get_me(actor_id: int = Depends(get_current_user_id)):
    try:
        return accounts.get_user(actor_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    request: UpdateUserRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Patch a profile (self or admin). Role and activation are admin-only."""
    fields = patch_fields(request, nullable=frozenset({"avatar_url", "bio"}))
    try:
        return accounts.update_user(actor_id, user_id, **fields)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.post("/auth/verify", response_model=UserResponse)
async def verify_credentials(request: VerifyCredentialsRequest):
    """Check a username/password pair for the authenticating gateway."""
    try:
        return accounts.verify_credentials(request.username, request.password)
    except PlatformError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
