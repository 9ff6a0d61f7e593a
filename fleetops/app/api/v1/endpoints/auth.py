"""
Authentication API endpoints.

Register, login, token refresh, logout and current-user info, plus
admin-only account deactivation and reactivation.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from fleetops.app.db.session import get_db
from fleetops.app.models.user import User
from fleetops.app.models.enums import UserRole
from fleetops.app.schemas.auth import UserRegister, UserLogin, RefreshRequest, TokenResponse, UserResponse
from fleetops.app.schemas.common import ApiResponse, ok
from fleetops.app.core.security import get_password_hash, verify_password
from fleetops.app.core.jwt import create_access_token, create_refresh_token, decode_refresh_token
from fleetops.app.core.dependencies import get_current_user
from fleetops.app.core.guards import ADMIN_ONLY, require_role
from fleetops.app.core.redis_client import get_redis
from fleetops.app.core.token_revocation import revoke_token, revoke_all_user_tokens, clear_user_token_revocation
from fleetops.app.services.audit import AuditAction, client_ip, log_auth_event, log_user_action

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _issue_tokens(db: AsyncSession, user: User) -> TokenResponse:
    """Mint an access/refresh pair and store the refresh token on the user."""
    jwt_payload = {
        "sub": user.user_name,
        "user_id": user.id,
        "role": user.role.value,
    }
    access_token = create_access_token(data=jwt_payload)
    refresh_token = create_refresh_token(data=jwt_payload)

    user.refresh_token = refresh_token
    await db.commit()

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user_id=user.id,
        user_name=user.user_name,
        email=user.email,
        role=user.role,
    )


@router.post("/register", response_model=ApiResponse[TokenResponse], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    ADMIN accounts cannot be created through the API.
    """
    if user_data.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin users cannot be registered via API"
        )

    result = await db.execute(
        select(User).where(
            or_(User.user_name == user_data.user_name, User.email == user_data.email)
        )
    )
    existing_user = result.scalar_one_or_none()

    if existing_user:
        if existing_user.user_name == user_data.user_name:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username already registered"
            )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    new_user = User(
        email=user_data.email,
        user_name=user_data.user_name,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role or UserRole.FINANCIAL_ANALYSTS,
        is_active=True,
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    tokens = await _issue_tokens(db, new_user)
    await log_auth_event(
        db=db,
        action=AuditAction.USER_REGISTERED,
        user_id=new_user.id,
        username=new_user.user_name,
        ip_address=client_ip(request),
        metadata={"role": new_user.role.value}
    )
    return ok(tokens, "User registered successfully")


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT tokens.

    Accepts username or email. Failed attempts are audited.
    """
    identifier = credentials.user_name.strip().lower()
    result = await db.execute(
        select(User).where(
            or_(User.user_name == identifier, User.email == credentials.user_name.strip())
        )
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id if user else None,
            username=user.user_name if user else credentials.user_name,
            ip_address=client_ip(request),
            metadata={"reason": "Invalid password" if user else "User not found"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            username=user.user_name,
            ip_address=client_ip(request),
            metadata={"reason": "Account is inactive"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    tokens = await _issue_tokens(db, user)
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        username=user.user_name,
        ip_address=client_ip(request)
    )
    return ok(tokens, "Login successful")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange a refresh token for a new token pair.

    Only the most recently issued refresh token is accepted (rotation).
    """
    payload = decode_refresh_token(body.refresh_token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == payload.get("user_id")))
    user = result.scalar_one_or_none()

    if not user or not user.is_active or user.refresh_token != body.refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token is no longer valid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tokens = await _issue_tokens(db, user)
    return ok(tokens, "Token refreshed successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Revoke the presented access token and drop the stored refresh token."""
    await revoke_token(redis, current_user["token"], current_user["user_id"])

    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one()
    user.refresh_token = None
    await db.commit()

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=user.id,
        username=user.user_name,
        ip_address=client_ip(request)
    )
    return ok(None, "Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.

    Raises:
        404: If user not found in database
    """
    result = await db.execute(select(User).where(User.id == current_user.get("user_id")))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return ok(UserResponse.model_validate(user), "User retrieved successfully")


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.post("/users/{user_id}/deactivate", response_model=ApiResponse[UserResponse])
async def deactivate_user(
    user_id: int,
    request: Request,
    admin: dict = Depends(require_role(ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Deactivate a user and cut off every access token they hold (admin-only).

    The stored refresh token is dropped, so the user cannot mint new ones.
    """
    target_user = await _get_user_or_404(db, user_id)

    if target_user.id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate yourself"
        )
    if target_user.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot deactivate another admin user"
        )
    if not target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already inactive"
        )

    target_user.is_active = False
    target_user.refresh_token = None
    await db.commit()
    await db.refresh(target_user)

    await revoke_all_user_tokens(redis, target_user.id)

    await log_user_action(
        db, admin, AuditAction.USER_DEACTIVATED, "user", target_user.id,
        metadata={"user_name": target_user.user_name}, request=request
    )
    return ok(UserResponse.model_validate(target_user), f"User '{target_user.user_name}' has been deactivated")


@router.post("/users/{user_id}/reactivate", response_model=ApiResponse[UserResponse])
async def reactivate_user(
    user_id: int,
    request: Request,
    admin: dict = Depends(require_role(ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Reactivate a user; they sign in again to get fresh tokens (admin-only)."""
    target_user = await _get_user_or_404(db, user_id)

    if target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already active"
        )

    target_user.is_active = True
    await db.commit()
    await db.refresh(target_user)

    await clear_user_token_revocation(redis, target_user.id)

    await log_user_action(
        db, admin, AuditAction.USER_REACTIVATED, "user", target_user.id,
        metadata={"user_name": target_user.user_name}, request=request
    )
    return ok(UserResponse.model_validate(target_user), f"User '{target_user.user_name}' has been reactivated")
