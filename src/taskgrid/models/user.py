"""User domain models built with SQLModel."""

from enum import Enum
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import TimestampMixin


class UserRole(str, Enum):
    """The three privilege levels; exactly one applies to every account."""

    MEMBER = "member"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_admin(self) -> bool:
        """True for admins and the super-admin."""
        return self in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @property
    def is_super_admin(self) -> bool:
        return self is UserRole.SUPER_ADMIN

    def can_manage(self, target: "UserRole") -> bool:
        """Whether a holder of this role may update or delete ``target`` accounts."""
        if self is UserRole.SUPER_ADMIN:
            return target in (UserRole.ADMIN, UserRole.MEMBER)
        if self is UserRole.ADMIN:
            return target is UserRole.MEMBER
        return False


ASSIGNABLE_ROLES = frozenset({UserRole.MEMBER, UserRole.ADMIN})


class UserBase(SQLModel, table=False):
    """Shared attributes for user models."""

    name: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    email: str = Field(
        max_length=320,
        sa_column=sa.Column(sa.String(length=320), nullable=False, unique=True),
    )
    role: UserRole = Field(
        default=UserRole.MEMBER,
        sa_column=sa.Column(
            sa.Enum(UserRole, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
            nullable=False,
            server_default=UserRole.MEMBER.value,
        ),
    )
    profile_image_url: Optional[str] = Field(
        default=None,
        sa_column=sa.Column(sa.String(length=2048), nullable=True),
    )


class User(UserBase, TimestampMixin, table=True):
    """Persistent user model."""

    __tablename__ = "users"
    __table_args__ = (sa.Index("ix_users_email", "email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    hashed_password: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )


__all__ = ["ASSIGNABLE_ROLES", "User", "UserBase", "UserRole"]
