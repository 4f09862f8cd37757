"""initial marketplace schema

Revision ID: 3b1f6a2c9d40
Revises:
Create Date: 2026-10-19 10:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b1f6a2c9d40"
down_revision = None
branch_labels = None
depends_on = None


def _create_indexes(insp, table_name: str, indexes) -> None:
    existing = {str(idx.get("name") or "") for idx in insp.get_indexes(table_name)}
    for name, columns, unique in indexes:
        if name not in existing:
            op.create_index(name, table_name, columns, unique=unique)


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not insp.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("role", sa.String(length=32), nullable=False, server_default="buyer"),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(insp, "users", [("ix_users_email", ["email"], True)])

    if not insp.has_table("profiles"):
        op.create_table(
            "profiles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("display_name", sa.String(length=120), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("location_city", sa.String(length=120), nullable=True),
            sa.Column("avatar_url", sa.String(length=1024), nullable=True),
            sa.Column("stripe_account_id", sa.String(length=64), nullable=True),
            sa.Column("stripe_details_submitted", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("stripe_charges_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("stripe_payouts_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("stripe_onboarded_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(
        insp,
        "profiles",
        [
            ("ix_profiles_user_id", ["user_id"], True),
            ("ix_profiles_stripe_account_id", ["stripe_account_id"], False),
        ],
    )

    if not insp.has_table("listings"):
        op.create_table(
            "listings",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("seller_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price", sa.Float(), nullable=False, server_default="0"),
            sa.Column("category", sa.String(length=120), nullable=True),
            sa.Column("condition", sa.String(length=64), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
            sa.Column("styles", sa.Text(), nullable=True),
            sa.Column("moods", sa.Text(), nullable=True),
            sa.Column("intents", sa.Text(), nullable=True),
            sa.Column("keywords", sa.Text(), nullable=True),
            sa.Column("story_text", sa.Text(), nullable=True),
            sa.Column("original_image_url", sa.String(length=1024), nullable=True),
            sa.Column("clean_image_url", sa.String(length=1024), nullable=True),
            sa.Column("embedding", sa.Text(), nullable=True),
            sa.Column("seller_stripe_account_id", sa.String(length=64), nullable=True),
            sa.Column("seller_name", sa.String(length=120), nullable=True),
            sa.Column("sold_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["seller_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(
        insp,
        "listings",
        [
            ("ix_listings_seller_id", ["seller_id"], False),
            ("ix_listings_category", ["category"], False),
            ("ix_listings_status", ["status"], False),
            ("ix_listings_created_at", ["created_at"], False),
        ],
    )

    if not insp.has_table("orders"):
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("buyer_id", sa.Integer(), nullable=False),
            sa.Column("seller_id", sa.Integer(), nullable=False),
            sa.Column("listing_id", sa.Integer(), nullable=False),
            sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="paid"),
            sa.Column("payment_intent_id", sa.String(length=128), nullable=False),
            sa.Column("stripe_session_id", sa.String(length=128), nullable=True),
            sa.Column("shipping_name", sa.String(length=200), nullable=True),
            sa.Column("shipping_address", sa.String(length=300), nullable=True),
            sa.Column("shipping_city", sa.String(length=120), nullable=True),
            sa.Column("shipping_state", sa.String(length=64), nullable=True),
            sa.Column("shipping_zip", sa.String(length=32), nullable=True),
            sa.Column("shipping_phone", sa.String(length=32), nullable=True),
            sa.Column("tracking_number", sa.String(length=120), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["buyer_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["seller_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["listing_id"], ["listings.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
    _create_indexes(
        insp,
        "orders",
        [
            ("ix_orders_buyer_id", ["buyer_id"], False),
            ("ix_orders_seller_id", ["seller_id"], False),
            ("ix_orders_listing_id", ["listing_id"], False),
            ("ix_orders_status", ["status"], False),
            ("ix_orders_payment_intent_id", ["payment_intent_id"], True),
            ("ix_orders_created_at", ["created_at"], False),
        ],
    )

    if not insp.has_table("favorites"):
        op.create_table(
            "favorites",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("listing_id", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["listing_id"], ["listings.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "listing_id", name="uq_favorites_user_listing"),
        )
    _create_indexes(
        insp,
        "favorites",
        [
            ("ix_favorites_user_id", ["user_id"], False),
            ("ix_favorites_listing_id", ["listing_id"], False),
        ],
    )

    if not insp.has_table("webhook_events"):
        op.create_table(
            "webhook_events",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("provider", sa.String(length=32), nullable=False, server_default="stripe"),
            sa.Column("event_id", sa.String(length=128), nullable=False),
            sa.Column("event_type", sa.String(length=80), nullable=True),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="received"),
            sa.Column("processed_at", sa.DateTime(), nullable=True),
            sa.Column("request_id", sa.String(length=64), nullable=True),
            sa.Column("payload_hash", sa.String(length=128), nullable=True),
            sa.Column("error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("event_id", name="uq_webhook_events_event_id"),
        )


def downgrade() -> None:
    for table_name in ("webhook_events", "favorites", "orders", "listings", "profiles", "users"):
        op.drop_table(table_name)
