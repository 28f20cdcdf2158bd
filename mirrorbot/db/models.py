"""SQLModel database models.

Durable state for the bot:
- users with their permanent gender, ban flag and admin-contact allowance
- confessions and their moderation status
- blind connection profiles (write-once)
- abuse reports, confession comments and reactions
- one-way admin contact messages
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import BigInteger, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

# =============================================================================
# Enums (shared across models)
# =============================================================================


class Gender(str, Enum):
    """Permanent user gender, chosen once before first use."""

    male = "male"
    female = "female"


class PreferredGender(str, Enum):
    """Who a user wants to be paired with."""

    male = "male"
    female = "female"
    both = "both"


class ConfessionType(str, Enum):
    """Kind of confession content."""

    text = "text"
    voice = "voice"


class ReviewStatus(str, Enum):
    """Moderation status of a confession."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AdminContactStatus(str, Enum):
    """Status of a one-way admin contact message."""

    pending = "pending"
    read = "read"


REACTION_EMOJIS = ("❤️", "😔", "🤍", "🌫️", "🌙")

# =============================================================================
# Database Models
# =============================================================================


class User(SQLModel, table=True):
    """A chat user seen by the bot."""

    __tablename__ = "users"

    user_id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    username: str | None = Field(default=None, max_length=64)
    first_name: str | None = Field(default=None, max_length=128)
    last_name: str | None = Field(default=None, max_length=128)
    gender: Gender | None = Field(default=None, description="Permanent once set")
    banned: bool = Field(default=False, index=True)
    admin_contact_allowed: bool = Field(
        default=True, description="Cleared after an admin contact, reopened by the sweep"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def display_name(self) -> str:
        """Name shown to a blind chat partner."""
        return self.username or self.first_name or "Anonymous"


class Confession(SQLModel, table=True):
    """An anonymous confession awaiting or past moderation."""

    __tablename__ = "confessions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))
    type: ConfessionType = Field(default=ConfessionType.text)
    text: str | None = Field(default=None, max_length=2000)
    voice_ref: str | None = Field(
        default=None, description="File reference of the anonymized voice"
    )
    voice_duration: int | None = Field(default=None, ge=0)
    status: ReviewStatus = Field(default=ReviewStatus.pending, index=True)
    channel_message_id: int | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
    posted_at: datetime | None = Field(default=None)


class BlindProfileRecord(SQLModel, table=True):
    """Blind connection profile. Created once, never edited."""

    __tablename__ = "blind_profiles"

    user_id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    gender: Gender
    age: int = Field(ge=18, le=50)
    years_on_campus: int = Field(ge=0, le=10)
    year_of_study: str = Field(max_length=16)
    pref_gender: PreferredGender
    pref_age_min: int = Field(ge=18, le=50)
    pref_age_max: int = Field(ge=18, le=50)
    profile_complete: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Report(SQLModel, table=True):
    """Abuse report filed from a blind chat."""

    __tablename__ = "reports"

    id: int | None = Field(default=None, primary_key=True)
    reporter_id: int = Field(sa_column=Column(BigInteger, nullable=False))
    reported_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))
    reason: str = Field(max_length=64)
    context: str = Field(default="Blind chat", max_length=64)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ConfessionComment(SQLModel, table=True):
    """Anonymous comment on a published confession."""

    __tablename__ = "confession_comments"

    id: int | None = Field(default=None, primary_key=True)
    confession_id: int = Field(foreign_key="confessions.id", index=True)
    user_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))
    username: str | None = Field(default=None, max_length=64)
    text: str = Field(max_length=500)
    anonymous: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)


class ConfessionReaction(SQLModel, table=True):
    """One user's emoji reaction on a confession."""

    __tablename__ = "confession_reactions"
    __table_args__ = (
        UniqueConstraint("confession_id", "user_id", "emoji", name="uq_reaction_once"),
    )

    id: int | None = Field(default=None, primary_key=True)
    confession_id: int = Field(foreign_key="confessions.id", index=True)
    user_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))
    emoji: str = Field(max_length=8)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AdminContact(SQLModel, table=True):
    """One-way message from a user to the admin team."""

    __tablename__ = "admin_contacts"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(BigInteger, index=True, nullable=False))
    message: str = Field(max_length=4096)
    status: AdminContactStatus = Field(default=AdminContactStatus.pending)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
