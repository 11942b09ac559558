"""User session model - originating IP captured by the auth layer."""

import uuid as uuid_pkg
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel

from app.models.base import UUIDMixin


class UserSession(UUIDMixin, table=True):
    """
    Session/IP record written at signup or login.

    Read-only for the referral pipeline. ip_address is NULL when capture
    failed, which the IP collusion guard treats as "cannot prove collusion".
    """

    __tablename__ = "user_sessions"
    __table_args__ = (Index("ix_user_sessions_user_created", "user_id", "created_at"),)

    user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    ip_address: str | None = Field(default=None, max_length=45, nullable=True)
    user_agent: str | None = Field(default=None, max_length=500, nullable=True)

    created_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )
