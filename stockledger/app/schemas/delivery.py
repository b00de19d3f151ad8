from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from stockledger.app.db.models.core_types import (
    DeliveryLineStatus,
    DeliveryStatus,
    IssueStatus,
    IssueType,
)


class DeliveryLineConfirm(BaseModel):
    po_line_item_id: int
    actual_quantity: int
    status: DeliveryLineStatus | None = None
    notes: str | None = None
    damage_description: str | None = None


class DeliveryConfirmationForm(BaseModel):
    purchase_order_id: int
    delivery_date: datetime
    received_by: str = Field(min_length=1, max_length=200)
    notes: str | None = None
    line_items: list[DeliveryLineConfirm] = Field(default_factory=list)


class DeliveryResult(BaseModel):
    delivery_id: int
    issues_created: int
    inventory_updated: int


class DeliveryLineRead(BaseModel):
    id: int
    po_line_item_id: int
    material_id: int | None = None
    material_name: str
    expected_quantity: int
    actual_quantity: int
    status: DeliveryLineStatus | None = None
    damage_description: str | None = None

    class Config:
        from_attributes = True


class DeliveryRead(BaseModel):
    id: int
    purchase_order_id: int
    po_number: str
    delivery_date: datetime
    received_by: str
    status: DeliveryStatus
    notes: str | None = None
    created_at: datetime
    line_items: list[DeliveryLineRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ShipmentIssueRead(BaseModel):
    id: int
    delivery_id: int
    purchase_order_id: int
    po_line_item_id: int
    material_id: int | None = None
    material_name: str
    issue_type: IssueType
    expected_quantity: int
    actual_quantity: int
    quantity_difference: int
    description: str
    status: IssueStatus
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    resolution_notes: str | None = None

    class Config:
        from_attributes = True


class IssueResolve(BaseModel):
    resolution_notes: str = Field(min_length=1)


class DeliveryStatistics(BaseModel):
    total_deliveries: int
    deliveries_with_issues: int
    open_issues: int
    resolved_issues: int
