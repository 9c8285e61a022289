"""
User service: registration, login and CRUD for the User aggregate.

Users are read straight from the database without caching; the list is
small and changes rarely.  Passwords are stored only as bcrypt hashes and
never leave this module.  Writes flush and leave the commit to the
``get_db`` dependency.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from content_api.models import User, utcnow
from content_api.schemas import LoginResponse, UserLogin, UserPage, UserRegister, UserResponse, UserUpdate
from content_api.security import create_access_token, hash_password, verify_password
from content_api.services.article_service import normalize_pagination

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _validate(name: str, email: str, password: str) -> None:
    """Raise ``ValidationError`` for the first missing or malformed field."""
    if not name:
        raise ValidationError("name is required")
    if not email:
        raise ValidationError("email is required")
    if "@" not in email:
        raise ValidationError("invalid email format")
    if not password:
        raise ValidationError("password is required")


async def _get_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def _load(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user not found")
    return user


async def _flush(db: AsyncSession) -> None:
    """Flush, translating a unique-constraint violation into a conflict."""
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("email already exists") from exc


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register_user(db: AsyncSession, data: UserRegister) -> UserResponse:
    """
    Create a user with a bcrypt-hashed password.

    The explicit email lookup gives a clean 409 in the common case; the
    unique index still guards the race between two concurrent sign-ups.
    """
    _validate(data.name, data.email, data.password)
    if await _get_by_email(db, data.email) is not None:
        raise ConflictError("email already exists")

    user = User(name=data.name, email=data.email, password_hash=hash_password(data.password))
    db.add(user)
    await _flush(db)
    logger.info("User %s registered; welcome email queued for %s", user.id, user.email)
    return UserResponse.model_validate(user)


async def login(db: AsyncSession, data: UserLogin) -> LoginResponse:
    """
    Exchange email and password for a bearer token.

    Unknown email and wrong password produce the same error so callers
    cannot probe which addresses are registered.
    """
    user = await _get_by_email(db, data.email)
    if user is None or not verify_password(user.password_hash, data.password):
        raise AuthenticationError("invalid email or password")
    token = create_access_token(user.id, user.email)
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


async def get_users(db: AsyncSession, limit: int, offset: int) -> UserPage:
    limit, offset = normalize_pagination(limit, offset)
    total: int = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    q = (
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(q)
    return UserPage(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


async def get_user(db: AsyncSession, user_id: int) -> UserResponse:
    return UserResponse.model_validate(await _load(db, user_id))


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> UserResponse:
    """Apply the fields present in *data*; a new password is re-hashed."""
    user = await _load(db, user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in changes and changes["email"] != user.email:
        if await _get_by_email(db, changes["email"]) is not None:
            raise ConflictError("email already exists")

    name = changes.get("name", user.name)
    email = changes.get("email", user.email)
    # The stored hash stands in for "password present" when it is unchanged.
    _validate(name, email, changes.get("password", user.password_hash))

    user.name = name
    user.email = email
    if "password" in changes:
        user.password_hash = hash_password(changes["password"])
    user.updated_at = utcnow()
    await _flush(db)
    return UserResponse.model_validate(user)


async def delete_user(db: AsyncSession, user_id: int) -> None:
    user = await _load(db, user_id)
    await db.delete(user)
    await db.flush()
    logger.info("User %s deleted", user_id)
