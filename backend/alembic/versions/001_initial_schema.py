"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Brands
    op.create_table(
        "brands",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("name_lower", sa.String(200), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.String(32), nullable=False),
        sa.Column("updated_at", sa.String(32), nullable=False),
    )

    # Locations (no FK to brands: brand deletes do not cascade)
    op.create_table(
        "locations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("brand_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("name_lower", sa.String(200), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("offer_ids", sa.JSON(), nullable=False),
        sa.Column("has_offer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.String(32), nullable=False),
        sa.Column("updated_at", sa.String(32), nullable=False),
        sa.UniqueConstraint("brand_id", "name_lower", name="uq_locations_brand_name_lower"),
    )
    op.create_index(
        "idx_locations_brand_name_lower",
        "locations",
        ["brand_id", "name_lower", "id"],
    )

    # Offers
    op.create_table(
        "offers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("brand_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("name_lower", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location_ids", sa.JSON(), nullable=False),
        sa.Column("locations_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.String(32), nullable=False),
        sa.Column("updated_at", sa.String(32), nullable=False),
        sa.UniqueConstraint("brand_id", "name", name="uq_offers_brand_name"),
        sa.CheckConstraint("locations_total >= 0", name="ck_offers_locations_total_non_negative"),
    )
    op.create_index(
        "idx_offers_brand_name_lower",
        "offers",
        ["brand_id", "name_lower", "id"],
    )


def downgrade() -> None:
    op.drop_index("idx_offers_brand_name_lower", "offers")
    op.drop_table("offers")
    op.drop_index("idx_locations_brand_name_lower", "locations")
    op.drop_table("locations")
    op.drop_table("brands")
