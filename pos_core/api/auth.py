"""Authentication API endpoints"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pos_core.config import settings
from pos_core.database import get_db
from pos_core.models.tenant import Branch
from pos_core.models.user import User, UserRole
from pos_core.schemas.auth import Token, TokenPayload, LoginRequest, RefreshRequest, UserResponse
from pos_core.services.scope import ActorScope

router = APIRouter()
logger = structlog.get_logger()

# Roles that work from one branch's till or kitchen display
BRANCH_ROLES = (UserRole.CASHIER, UserRole.KITCHEN)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password"""
    return pwd_context.hash(password)


def create_access_token(user: User) -> str:
    """Create JWT access token"""
    expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user.id),
        "organization_id": str(user.organization_id) if user.organization_id else None,
        "branch_id": str(user.branch_id) if user.branch_id else None,
        "role": UserRole(user.role).value,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(user: User) -> str:
    """Create JWT refresh token"""
    expire = datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days)
    payload = {
        "sub": str(user.id),
        "exp": expire,
        "type": "refresh",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str, expected_type: str) -> TokenPayload:
    """Decode a JWT and check it is an access or refresh token as expected"""
    try:
        payload = TokenPayload(
            **jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        )
    except (JWTError, ValidationError):
        raise _unauthorized()

    if payload.type != expected_type:
        raise _unauthorized()
    return payload


async def _active_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized()
    return user


async def check_assignment(db: AsyncSession, user: User) -> None:
    """Staff must be placed in the organization and, for till and kitchen
    roles, in an active branch of it."""
    role = UserRole(user.role)
    if role == UserRole.ADMIN:
        return

    if user.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not assigned to an organization",
        )

    if role in BRANCH_ROLES:
        branch = await db.get(Branch, user.branch_id) if user.branch_id else None
        if (
            branch is None
            or not branch.is_active
            or branch.organization_id != user.organization_id
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User is not assigned to an active branch",
            )


async def _issue_tokens(db: AsyncSession, user: User) -> Token:
    """New access/refresh pair; the stored refresh token is replaced"""
    access_token = create_access_token(user)
    refresh = create_refresh_token(user)

    user.refresh_token = refresh
    await db.commit()

    return Token(
        access_token=access_token,
        refresh_token=refresh,
        expires_in=settings.access_token_expire_minutes * 60,
        role=UserRole(user.role).value,
        organization_id=user.organization_id,
        branch_id=user.branch_id,
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from token"""
    payload = decode_token(token, "access")
    return await _active_user(db, payload.sub)


def require_role(required_role: UserRole):
    """Dependency factory for role-based access control"""
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_permission(required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{required_role.value} role required",
            )
        return current_user
    return role_checker


async def get_actor_scope(
    current_user: User = Depends(get_current_user),
    x_branch_id: Optional[UUID] = Header(None),
) -> ActorScope:
    """Scope passed into every core operation.

    ADMIN and MANAGER may pick a working branch with ``X-Branch-ID``; other
    roles are pinned to their own branch.
    """
    role = UserRole(current_user.role)
    branch_id = current_user.branch_id

    if x_branch_id is not None:
        if role in (UserRole.ADMIN, UserRole.MANAGER):
            branch_id = x_branch_id
        elif x_branch_id != current_user.branch_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied to this branch",
            )

    return ActorScope(
        actor_id=str(current_user.id),
        role=role.value,
        organization_id=current_user.organization_id,
        branch_id=branch_id,
    )


@router.post("/login", response_model=Token)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Staff sign-in at a till, kitchen display or back office"""
    result = await db.execute(select(User).where(User.email == request.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(request.password, user.hashed_password):
        logger.warning("Login failed", email=request.email)
        raise _unauthorized("Incorrect email or password")
    if not user.is_active:
        raise _unauthorized("User account is disabled")

    await check_assignment(db, user)

    user.last_login = datetime.utcnow()
    logger.info(
        "User logged in",
        user_id=str(user.id),
        role=user.role,
        branch_id=str(user.branch_id) if user.branch_id else None,
    )
    return await _issue_tokens(db, user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Rotate the refresh token; a used refresh token cannot be replayed"""
    payload = decode_token(request.refresh_token, "refresh")
    user = await _active_user(db, payload.sub)

    if user.refresh_token != request.refresh_token:
        raise _unauthorized("Invalid refresh token")

    # Reassignment or a closed branch takes effect at the next refresh
    await check_assignment(db, user)
    return await _issue_tokens(db, user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    return current_user


@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """End the shift: the stored refresh token stops working"""
    current_user.refresh_token = None
    await db.commit()
    logger.info("User logged out", user_id=str(current_user.id))
    return {"message": "Successfully logged out"}
