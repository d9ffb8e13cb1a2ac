from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Optional unless `users_require_email` is set; NULLs never collide.
    email: Mapped[str | None] = mapped_column(String(320), unique=True, index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    oauth2_identities: Mapped[list[OAuth2Identity]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    openid_identities: Mapped[list[OpenIdIdentity]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class OAuth2Identity(Base):
    __tablename__ = "user_oauth2_identities"
    __table_args__ = (
        UniqueConstraint("provider", "uid", name="uq_user_oauth2_identity_provider_uid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    # Provider key (e.g. "google", "github", "facebook")
    provider: Mapped[str] = mapped_column(String(50), index=True)
    # Provider's stable identifier for the end user
    uid: Mapped[str] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    user: Mapped[User] = relationship(back_populates="oauth2_identities")

    @property
    def identity(self) -> str:
        return f"{self.provider}:{self.uid}"


class OpenIdIdentity(Base):
    """Pre-OAuth2 OpenID identity, read only as a migration source."""

    __tablename__ = "user_openid_identities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    identity: Mapped[str] = mapped_column(String(255), unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    user: Mapped[User] = relationship(back_populates="openid_identities")
