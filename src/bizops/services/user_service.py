"""User allow-list and authentication service.

Users are the access allow-list: a login only succeeds for an active user
with a password hash. Admins manage the list; everyone can change their
own password.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.errors import ConflictError, NotFoundError
from bizops.models.user import User
from bizops.schemas.pagination import PaginationMeta, apply_cursor, split_page
from bizops.security import hash_password, verify_password

logger = logging.getLogger(__name__)

SALES_ROLES = ("SALE", "SALE_LEADER")
SELLER_ROLES = ("SALE", "SALE_LEADER", "ADMIN")
NULLABLE_FIELDS = frozenset({"password_hash"})


class AuthenticationError(Exception):
    """Credentials were not accepted."""


class AccessDeniedError(Exception):
    """Credentials are valid but the account is not on the allow-list."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    """Service for user CRUD, login and password management.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials and return the user.

        Raises:
            AuthenticationError: Unknown email, no password set, or wrong password.
            AccessDeniedError: The user exists but is inactive.
        """
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login for %s", normalize_email(email))
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AccessDeniedError("Account has not been granted access")
        return user

    async def change_password(self, email: str, old_password: str, new_password: str) -> None:
        """Change a user's own password after re-checking the old one.

        Raises:
            AuthenticationError: If the old password does not match.
            ValueError: If the new password is shorter than 8 characters.
        """
        if len(new_password) < 8:
            raise ValueError("Password must be at least 8 characters")
        user = await self.get_by_email(email)
        if user is None or not verify_password(old_password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        user.password_hash = hash_password(new_password)
        await self.db.commit()
        logger.info("Password changed for %s", user.email)

    async def bootstrap_admin(self, email: str | None, password: str | None, name: str) -> User | None:
        """Create the first ADMIN when the users table is empty.

        Returns:
            The created user, or None if nothing was done.
        """
        if not email:
            return None
        count = await self.db.scalar(select(func.count()).select_from(User))
        if count:
            return None
        user = User(
            email=normalize_email(email),
            name=name,
            role="ADMIN",
            is_active=True,
            password_hash=hash_password(password) if password else None,
            permissions={},
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Bootstrapped admin user %s", user.email)
        return user

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_user(
        self,
        email: str,
        name: str = "",
        role: str = "STAFF",
        team: str = "CHUNG",
        is_active: bool = True,
        password: str | None = None,
        permissions: dict | None = None,
    ) -> User:
        """Grant a new user access.

        Raises:
            ConflictError: If the email is already on the list.
        """
        user = User(
            email=normalize_email(email),
            name=name or email.split("@")[0],
            role=role,
            team=team,
            is_active=is_active,
            password_hash=hash_password(password) if password else None,
            permissions=permissions or {},
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(f"User with email '{user.email}' already exists") from exc
        await self.db.refresh(user)
        logger.info("Granted access to %s as %s", user.email, user.role)
        return user

    async def list_users(
        self,
        page_size: int = 50,
        after: str | None = None,
    ) -> tuple[list[User], PaginationMeta]:
        query = apply_cursor(select(User), User, after, page_size)
        result = await self.db.execute(query)
        return split_page(result.scalars().all(), page_size, after)

    async def get_user(self, user_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def update_user(self, user_id: str, **kwargs: object) -> User:
        """Partial update; a ``password`` value is stored as a bcrypt hash.

        Raises:
            NotFoundError: If the user is not found.
        """
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")

        password = kwargs.pop("password", None)
        if password:
            user.password_hash = hash_password(str(password))
        for field, value in kwargs.items():
            if value is not None or field in NULLABLE_FIELDS:
                setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def assign_team(self, email: str, team: str) -> User:
        user = await self.get_by_email(email)
        if user is None:
            raise NotFoundError(f"User not found: {email}")
        user.team = team
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def delete_user(self, user_id: str) -> User:
        """Remove a user from the allow-list, revoking access.

        Returns:
            The deleted user (detached) for auditing.
        """
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        await self.db.delete(user)
        await self.db.commit()
        logger.info("Revoked access for %s", user.email)
        return user

    # ------------------------------------------------------------------
    # Sales staff lookups
    # ------------------------------------------------------------------

    async def list_sales_team(self) -> list[User]:
        """Active sellers eligible for lead rotation, in a stable order."""
        result = await self.db.execute(
            select(User)
            .where(User.is_active.is_(True), User.role.in_(SALES_ROLES))
            .order_by(User.created_at.asc(), User.email.asc())
        )
        return list(result.scalars().all())

    async def list_sellers(self) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.role.in_(SELLER_ROLES)).order_by(User.name.asc())
        )
        return list(result.scalars().all())

    async def list_active(self, team: str | None = None) -> list[User]:
        query = select(User).where(User.is_active.is_(True))
        if team is not None:
            query = query.where(User.team == team)
        result = await self.db.execute(query.order_by(User.name.asc()))
        return list(result.scalars().all())
