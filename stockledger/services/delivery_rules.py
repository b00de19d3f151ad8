"""Règles pures de rapprochement livraison : écarts, descriptions, statut."""

from __future__ import annotations

from typing import Iterable

from stockledger.app.db.models.core_types import (
    DeliveryLineStatus,
    DeliveryStatus,
    IssueType,
)


def quantity_difference(expected: int, actual: int) -> int:
    return actual - expected


def has_delivery_issue(status: DeliveryLineStatus | None) -> bool:
    # ligne non confirmée (None) : pas d'issue
    return status is not None and status != DeliveryLineStatus.ok


def issue_type_for(status: DeliveryLineStatus) -> IssueType:
    if status == DeliveryLineStatus.ok:
        raise ValueError("Cannot create issue for OK status")
    return IssueType(status.value)


def issue_description(
    status: DeliveryLineStatus,
    expected_quantity: int,
    actual_quantity: int,
    material_name: str,
    damage_description: str | None = None,
) -> str:
    if status == DeliveryLineStatus.short:
        return f"Short delivery: Expected {expected_quantity}, received {actual_quantity} of {material_name}"
    if status == DeliveryLineStatus.over:
        return f"Over delivery: Expected {expected_quantity}, received {actual_quantity} of {material_name}"
    if status == DeliveryLineStatus.damaged:
        base = f"Damaged delivery: {actual_quantity} units of {material_name} received damaged"
        return f"{base}. Details: {damage_description}" if damage_description else base
    return f"Issue with delivery of {material_name}"


def new_inventory_quantity(current_quantity: int, delivered_quantity: int) -> int:
    # cache "on hand" physique : jamais négatif
    return max(0, current_quantity + delivered_quantity)


def validate_line_item(
    status: DeliveryLineStatus | None,
    expected_quantity: int,
    actual_quantity: int,
    damage_description: str | None = None,
) -> list[str]:
    errors: list[str] = []

    if actual_quantity < 0:
        errors.append("Actual quantity cannot be negative")

    if status == DeliveryLineStatus.damaged and not (damage_description or "").strip():
        errors.append("Damage description is required for damaged items")

    if status == DeliveryLineStatus.short and actual_quantity >= expected_quantity:
        errors.append("Actual quantity should be less than expected for short deliveries")

    if status == DeliveryLineStatus.over and actual_quantity <= expected_quantity:
        errors.append("Actual quantity should be more than expected for over deliveries")

    return errors


def delivery_status(line_statuses: Iterable[DeliveryLineStatus | None]) -> DeliveryStatus:
    """pending si une ligne n'est pas confirmée (ou aucune ligne), issues si un écart, sinon confirmed."""
    statuses = list(line_statuses)
    if not statuses or any(s is None for s in statuses):
        return DeliveryStatus.pending
    if any(has_delivery_issue(s) for s in statuses):
        return DeliveryStatus.issues
    return DeliveryStatus.confirmed
