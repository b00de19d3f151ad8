"""initial schema: materials, locations, movements, procurement, deliveries

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

# valeurs persistées (cf. core_types)
ENUMS = {
    "location_type": ("warehouse", "jobsite", "truck", "other"),
    "movement_type": ("receipt", "transfer", "adjustment", "usage", "return", "loss", "sale"),
    "reference_type": ("receipt", "delivery", "purchase_order", "adjustment", "transfer"),
    "po_status": (
        "draft",
        "pending",
        "approved",
        "partially_received",
        "fully_received",
        "partial",
        "delivered",
        "cancelled",
    ),
    "po_line_status": ("open", "partially_received", "fully_received"),
    "receipt_status": ("pending", "completed"),
    "quality_status": ("accepted", "rejected", "pending_inspection"),
    "delivery_status": ("pending", "confirmed", "issues"),
    "delivery_line_status": ("ok", "short", "over", "damaged"),
    "issue_type": ("short", "over", "damaged"),
    "issue_status": ("open", "resolved", "closed"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "materials",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64)),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("category", sa.String(128)),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        _ts("created_at"),
        sa.CheckConstraint("quantity >= 0", name="ck_material_quantity_nonneg"),
    )
    op.create_index("ix_materials_user_id", "materials", ["user_id"])

    op.create_table(
        "inventory_locations",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", _enum("location_type"), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_inventory_locations_user_id", "inventory_locations", ["user_id"])

    op.create_table(
        "inventory_lots",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("material_id", ID, sa.ForeignKey("materials.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("location_id", ID, sa.ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("lot_number", sa.String(64)),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        _ts("received_date"),
        _ts("expiration_date", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )
    op.create_index("ix_inventory_lots_user_id", "inventory_lots", ["user_id"])

    op.create_table(
        "inventory_movements",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("material_id", ID, sa.ForeignKey("materials.id", ondelete="RESTRICT")),
        sa.Column("material_name", sa.String(255), nullable=False),
        sa.Column("movement_type", _enum("movement_type"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("from_location_id", ID, sa.ForeignKey("inventory_locations.id", ondelete="RESTRICT")),
        sa.Column("to_location_id", ID, sa.ForeignKey("inventory_locations.id", ondelete="RESTRICT")),
        sa.Column("reference_type", _enum("reference_type")),
        sa.Column("reference_id", sa.String(64)),
        sa.Column("notes", sa.Text()),
        sa.Column("previous_quantity", sa.Integer()),
        sa.Column("new_quantity", sa.Integer()),
        _ts("created_at"),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_movement_qty_pos"),
    )
    op.create_index("ix_inventory_movements_user_id", "inventory_movements", ["user_id"])
    op.create_index("ix_inventory_movements_material_id", "inventory_movements", ["material_id"])
    op.create_index("ix_inventory_movements_user_time", "inventory_movements", ["user_id", "created_at"])

    op.create_table(
        "purchase_orders",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("po_number", sa.String(64), nullable=False),
        sa.Column("supplier_name", sa.String(255), nullable=False),
        sa.Column("status", _enum("po_status"), nullable=False),
        _ts("order_date"),
        _ts("expected_delivery_date", nullable=True),
        sa.Column("notes", sa.Text()),
        sa.Column("total_ordered_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_received_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_fully_received", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("user_id", "po_number", name="uq_purchase_orders_user_po_number"),
    )
    op.create_index("ix_purchase_orders_user_id", "purchase_orders", ["user_id"])

    op.create_table(
        "purchase_order_lines",
        sa.Column("id", ID, primary_key=True),
        sa.Column("po_id", ID, sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("material_id", ID, sa.ForeignKey("materials.id", ondelete="RESTRICT")),
        sa.Column("material_name", sa.String(255), nullable=False),
        sa.Column("material_sku", sa.String(64)),
        sa.Column("description", sa.Text()),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2)),
        sa.Column("ordered_quantity", sa.Integer(), nullable=False),
        sa.Column("received_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("remaining_quantity", sa.Integer(), nullable=False),
        sa.Column("status", _enum("po_line_status"), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint("ordered_quantity > 0", name="ck_po_line_ordered_pos"),
        sa.CheckConstraint("received_quantity >= 0", name="ck_po_line_received_nonneg"),
        sa.CheckConstraint("received_quantity <= ordered_quantity", name="ck_po_line_received_le_ordered"),
    )
    op.create_index("ix_purchase_order_lines_po_id", "purchase_order_lines", ["po_id"])

    op.create_table(
        "receipts",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("po_id", ID, sa.ForeignKey("purchase_orders.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("shipment_id", sa.String(64)),
        sa.Column("status", _enum("receipt_status"), nullable=False),
        _ts("received_date"),
        sa.Column("received_by", sa.String(64), nullable=False),
        sa.Column("notes", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_receipts_user_id", "receipts", ["user_id"])
    op.create_index("ix_receipts_po_id", "receipts", ["po_id"])

    op.create_table(
        "receipt_lines",
        sa.Column("id", ID, primary_key=True),
        sa.Column("receipt_id", ID, sa.ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("po_line_id", ID, sa.ForeignKey("purchase_order_lines.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("material_id", ID, sa.ForeignKey("materials.id", ondelete="RESTRICT")),
        sa.Column("material_name", sa.String(255), nullable=False),
        sa.Column("material_sku", sa.String(64)),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("received_quantity", sa.Integer(), nullable=False),
        sa.Column("quality_status", _enum("quality_status"), nullable=False),
        sa.Column("notes", sa.Text()),
        _ts("created_at"),
        sa.CheckConstraint("received_quantity > 0", name="ck_receipt_line_qty_pos"),
    )
    op.create_index("ix_receipt_lines_receipt_id", "receipt_lines", ["receipt_id"])

    op.create_table(
        "deliveries",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("purchase_order_id", ID, sa.ForeignKey("purchase_orders.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("po_number", sa.String(64), nullable=False),
        _ts("delivery_date"),
        sa.Column("received_by", sa.String(200), nullable=False),
        sa.Column("status", _enum("delivery_status"), nullable=False),
        sa.Column("notes", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_deliveries_user_id", "deliveries", ["user_id"])
    op.create_index("ix_deliveries_purchase_order_id", "deliveries", ["purchase_order_id"])

    op.create_table(
        "delivery_line_items",
        sa.Column("id", ID, primary_key=True),
        sa.Column("delivery_id", ID, sa.ForeignKey("deliveries.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "po_line_item_id",
            ID,
            sa.ForeignKey("purchase_order_lines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("material_id", ID, sa.ForeignKey("materials.id", ondelete="RESTRICT")),
        sa.Column("material_name", sa.String(255), nullable=False),
        sa.Column("expected_quantity", sa.Integer(), nullable=False),
        sa.Column("actual_quantity", sa.Integer(), nullable=False),
        sa.Column("status", _enum("delivery_line_status")),
        sa.Column("notes", sa.Text()),
        sa.Column("damage_description", sa.Text()),
    )
    op.create_index("ix_delivery_line_items_delivery_id", "delivery_line_items", ["delivery_id"])

    op.create_table(
        "shipment_issues",
        sa.Column("id", ID, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("delivery_id", ID, sa.ForeignKey("deliveries.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("purchase_order_id", ID, sa.ForeignKey("purchase_orders.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "po_line_item_id",
            ID,
            sa.ForeignKey("purchase_order_lines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("material_id", ID, sa.ForeignKey("materials.id", ondelete="RESTRICT")),
        sa.Column("material_name", sa.String(255), nullable=False),
        sa.Column("issue_type", _enum("issue_type"), nullable=False),
        sa.Column("expected_quantity", sa.Integer(), nullable=False),
        sa.Column("actual_quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_difference", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", _enum("issue_status"), nullable=False),
        _ts("created_at"),
        _ts("resolved_at", nullable=True),
        sa.Column("resolved_by", sa.String(64)),
        sa.Column("resolution_notes", sa.Text()),
    )
    op.create_index("ix_shipment_issues_user_id", "shipment_issues", ["user_id"])
    op.create_index("ix_shipment_issues_delivery_id", "shipment_issues", ["delivery_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", ID, primary_key=True),
        sa.Column("actor_id", sa.String(64)),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("meta", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    for table in (
        "audit_log",
        "shipment_issues",
        "delivery_line_items",
        "deliveries",
        "receipt_lines",
        "receipts",
        "purchase_order_lines",
        "purchase_orders",
        "inventory_movements",
        "inventory_lots",
        "inventory_locations",
        "materials",
    ):
        op.drop_table(table)

    # types ENUM Postgres (no-op ailleurs)
    bind = op.get_bind()
    for name in ENUMS:
        sa.Enum(name=name).drop(bind, checkfirst=True)
