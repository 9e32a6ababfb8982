"""Initial schema: users, gifts, notifications, wallet and the task queue.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create every table."""
    # --- Users ---
    op.create_table(
        "users",
        *_audit_columns(),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("username", sa.String(1000), nullable=False, unique=True),
        sa.Column("password", sa.String(256), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=True),
        sa.Column("last_name", sa.String(50), nullable=True),
        sa.Column("bio", sa.String(1000), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("is_staff", sa.Boolean(), nullable=False),
        sa.Column("is_superuser", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False),
        sa.Column("social_login", sa.Boolean(), nullable=False),
        sa.Column("terms_agreement", sa.Boolean(), nullable=False),
        sa.Column("coins", sa.Integer(), nullable=False),
        sa.Column("lanterns", sa.Integer(), nullable=False),
        sa.Column("current_plan", sa.String(16), nullable=True),
        sa.Column("subscription_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False),
        sa.Column("access", sa.Text(), nullable=True),
        sa.Column("refresh", sa.Text(), nullable=True),
        sa.Column("otp", sa.Integer(), nullable=True),
        sa.Column("otp_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("token_string", sa.String(100), nullable=True, unique=True),
        sa.Column("token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        sa.CheckConstraint("lanterns >= 0", name="ck_users_lanterns_non_negative"),
    )
    op.create_index("ix_users_subscription_expiry", "users", ["subscription_expiry"])

    op.create_table(
        "user_followers",
        sa.Column("follower_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("followed_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    # --- Gifts ---
    op.create_table(
        "gifts",
        *_audit_columns(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("slug", sa.String(1000), nullable=False, unique=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("lanterns", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.CheckConstraint("price >= 0", name="ck_gifts_price_non_negative"),
        sa.CheckConstraint("lanterns >= 0", name="ck_gifts_lanterns_non_negative"),
    )

    op.create_table(
        "sent_gifts",
        *_audit_columns(),
        sa.Column("sender_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("gift_id", sa.Uuid(), sa.ForeignKey("gifts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("claimed", sa.Boolean(), nullable=False),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_sent_gifts_not_self"),
    )
    op.create_index("ix_sent_gifts_sender_id", "sent_gifts", ["sender_id"])
    op.create_index("ix_sent_gifts_receiver_id", "sent_gifts", ["receiver_id"])

    # --- Notifications ---
    op.create_table(
        "notifications",
        *_audit_columns(),
        sa.Column("sender_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("receiver_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ntype", sa.String(32), nullable=False),
        sa.Column("text", sa.String(100), nullable=False),
        sa.Column("book_id", sa.Uuid(), nullable=True),
        sa.Column("review_id", sa.Uuid(), nullable=True),
        sa.Column("reply_id", sa.Uuid(), nullable=True),
        sa.Column("sent_gift_id", sa.Uuid(), sa.ForeignKey("sent_gifts.id", ondelete="CASCADE"), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_notifications_receiver_id", "notifications", ["receiver_id"])

    # --- Wallet ---
    op.create_table(
        "coins",
        *_audit_columns(),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(20, 10), nullable=False),
    )

    op.create_table(
        "subscription_plans",
        *_audit_columns(),
        sa.Column("type", sa.String(16), nullable=False, unique=True),
        sa.Column("amount", sa.Numeric(20, 10), nullable=False),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
    )

    op.create_table(
        "transactions",
        *_audit_columns(),
        sa.Column("reference", sa.String(1000), nullable=False, unique=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("coin_id", sa.Uuid(), sa.ForeignKey("coins.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "subscription_plan_id",
            sa.Uuid(),
            sa.ForeignKey("subscription_plans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("payment_status", sa.String(16), nullable=False),
        sa.Column("payment_type", sa.String(16), nullable=False),
        sa.CheckConstraint("(coin_id IS NULL) <> (subscription_plan_id IS NULL)", name="ck_transactions_one_product"),
        sa.CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])

    op.create_table(
        "bought_books",
        *_audit_columns(),
        sa.Column("buyer_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("book_id", sa.Uuid(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.UniqueConstraint("buyer_id", "book_id", name="uq_bought_books_buyer_book"),
    )
    op.create_index("ix_bought_books_buyer_id", "bought_books", ["buyer_id"])

    # --- Task queue ---
    op.create_table(
        "tasks",
        *_audit_columns(),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("payload", sa.LargeBinary(), nullable=False),
        sa.Column("queue", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("run_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("leased_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("worker_id", sa.String(64), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
    )
    op.create_index("ix_tasks_queue", "tasks", ["queue"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_run_at", "tasks", ["run_at"])


def downgrade() -> None:
    """Drop every table."""
    for table in (
        "tasks",
        "bought_books",
        "transactions",
        "subscription_plans",
        "coins",
        "notifications",
        "sent_gifts",
        "gifts",
        "user_followers",
        "users",
    ):
        op.drop_table(table)
