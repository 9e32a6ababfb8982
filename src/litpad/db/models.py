"""ORM models for the engagement and economy tables."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from litpad.db.base import Base, Model, UTCDateTime

_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_SEP = re.compile(r"[-\s_]+")


def slugify(value: str) -> str:
    """Lowercase, drop punctuation, join words with hyphens."""
    value = _SLUG_STRIP.sub("", value.lower()).strip()
    return _SLUG_SEP.sub("-", value).strip("-")


class Role(StrEnum):
    READER = "READER"
    WRITER = "WRITER"


class PlanType(StrEnum):
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


class NotificationType(StrEnum):
    LIKE = "LIKE"
    REPLY = "REPLY"
    FOLLOWING = "FOLLOWING"
    BOOK_PURCHASE = "BOOK_PURCHASE"
    GIFT = "GIFT"
    REVIEW = "REVIEW"
    VOTE = "VOTE"


class PaymentStatus(StrEnum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


class PaymentType(StrEnum):
    STRIPE = "STRIPE"
    GOOGLE_PAY = "GOOGLE PAY"
    PAYPAL = "PAYPAL"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


user_followers = Table(
    "user_followers",
    Base.metadata,
    Column("follower_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("followed_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Model):
    """A reader or writer account, with balances and subscription state."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        CheckConstraint("lanterns >= 0", name="ck_users_lanterns_non_negative"),
    )

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(256), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    role: Mapped[str] = mapped_column(String(16), nullable=False, default=Role.READER)
    is_staff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_superuser: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    social_login: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    terms_agreement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- Economy ---
    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lanterns: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Subscription ---
    current_plan: Mapped[str | None] = mapped_column(String(16), nullable=True)
    subscription_expiry: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- Sessions ---
    access: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- One-time codes ---
    otp: Mapped[int | None] = mapped_column(Integer, nullable=True)
    otp_expiry: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    token_string: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    token_expiry: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return value.strip().lower()

    @property
    def full_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    @property
    def is_writer(self) -> bool:
        return self.role == Role.WRITER


# ---------------------------------------------------------------------------
# Gifts
# ---------------------------------------------------------------------------


class Gift(Model):
    """Catalog entry; slug follows the name."""

    __tablename__ = "gifts"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_gifts_price_non_negative"),
        CheckConstraint("lanterns >= 0", name="ck_gifts_lanterns_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    lanterns: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    @validates("name")
    def _derive_slug(self, _key: str, value: str) -> str:
        self.slug = slugify(value)
        return value


class SentGift(Model):
    """One gift sent from a reader to a writer, pending claim."""

    __tablename__ = "sent_gifts"
    __table_args__ = (CheckConstraint("sender_id <> receiver_id", name="ck_sent_gifts_not_self"),)

    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    gift_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("gifts.id", ondelete="CASCADE"), nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sender: Mapped[User] = relationship(foreign_keys=[sender_id], lazy="selectin")
    gift: Mapped[Gift] = relationship(lazy="selectin")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Model):
    """Typed notification addressed to exactly one receiver."""

    __tablename__ = "notifications"

    sender_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ntype: Mapped[str] = mapped_column(String(32), nullable=False)
    text: Mapped[str] = mapped_column(String(100), nullable=False)
    # Books, reviews and replies live outside this service.
    book_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    review_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reply_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    sent_gift_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("sent_gifts.id", ondelete="CASCADE"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sender: Mapped[User | None] = relationship(foreign_keys=[sender_id], lazy="selectin")


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class Coin(Model):
    """A purchasable pack of coins."""

    __tablename__ = "coins"

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(20, 10), nullable=False)


class SubscriptionPlan(Model):
    __tablename__ = "subscription_plans"

    type: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 10), nullable=False)
    stripe_price_id: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Transaction(Model):
    """A payment for either a coin pack or a subscription plan."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint(
            "(coin_id IS NULL) <> (subscription_plan_id IS NULL)",
            name="ck_transactions_one_product",
        ),
        CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
    )

    reference: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    coin_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("coins.id", ondelete="SET NULL"), nullable=True
    )
    subscription_plan_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("subscription_plans.id", ondelete="SET NULL"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default=PaymentStatus.PENDING)
    payment_type: Mapped[str] = mapped_column(String(16), nullable=False, default=PaymentType.STRIPE)

    coin: Mapped[Coin | None] = relationship(lazy="selectin")
    subscription_plan: Mapped[SubscriptionPlan | None] = relationship(lazy="selectin")


class BoughtBook(Model):
    """Receipt of a book purchase; books themselves live elsewhere."""

    __tablename__ = "bought_books"
    __table_args__ = (UniqueConstraint("buyer_id", "book_id", name="uq_bought_books_buyer_book"),)

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    book_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Task queue
# ---------------------------------------------------------------------------


class Task(Model):
    """Durable unit of work, executed at least once under a lease."""

    __tablename__ = "tasks"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    queue: Mapped[str] = mapped_column(String(16), nullable=False, default="default", index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    run_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    leased_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    worker_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
