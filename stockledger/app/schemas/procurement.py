from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from stockledger.app.db.models.core_types import (
    POStatus,
    POLineStatus,
    QualityStatus,
    ReceiptStatus,
)


class POLineCreate(BaseModel):
    material_id: int | None = None
    material_name: str = Field(min_length=1, max_length=255)
    material_sku: str | None = Field(default=None, max_length=64)
    description: str | None = None
    ordered_quantity: int = Field(gt=0)
    unit: str = Field(default="unit", max_length=32)
    unit_price: Decimal | None = Field(default=None, ge=0)


class POCreate(BaseModel):
    po_number: str = Field(min_length=1, max_length=64)
    supplier_name: str = Field(min_length=1, max_length=255)
    order_date: datetime | None = None
    expected_delivery_date: datetime | None = None
    notes: str | None = None
    lines: list[POLineCreate] = Field(min_length=1)


class POLineRead(BaseModel):
    id: int
    line_number: int
    material_id: int | None = None
    material_name: str
    material_sku: str | None = None
    unit: str
    ordered_quantity: int
    received_quantity: int
    remaining_quantity: int
    status: POLineStatus

    class Config:
        from_attributes = True


class PORead(BaseModel):
    id: int
    po_number: str
    supplier_name: str
    status: POStatus
    order_date: datetime
    expected_delivery_date: datetime | None = None
    total_ordered_quantity: int
    total_received_quantity: int
    is_fully_received: bool
    created_at: datetime
    lines: list[POLineRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ---------- Réception ----------
class ReceiptLineCreate(BaseModel):
    po_line_id: int
    received_quantity: int = Field(gt=0)
    quality_status: QualityStatus = QualityStatus.accepted
    notes: str | None = None


class ReceiptCreate(BaseModel):
    po_id: int
    received_date: datetime | None = None
    shipment_id: str | None = Field(default=None, max_length=64)
    # location de destination des mouvements "receipt" (optionnelle)
    to_location_id: int | None = None
    notes: str | None = None
    line_items: list[ReceiptLineCreate] = Field(min_length=1)


class ReceiptRead(BaseModel):
    id: int
    receipt_number: str
    po_id: int
    status: ReceiptStatus
    received_date: datetime
    received_by: str
    notes: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReceiptResult(BaseModel):
    receipt_id: int
