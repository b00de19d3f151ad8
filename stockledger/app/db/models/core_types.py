import enum

class LocationType(str, enum.Enum):
    warehouse = "warehouse"
    jobsite = "jobsite"
    truck = "truck"
    other = "other"

class MovementType(str, enum.Enum):
    receipt = "receipt"
    transfer = "transfer"
    adjustment = "adjustment"
    usage = "usage"
    return_ = "return"
    loss = "loss"
    sale = "sale"

class ReferenceType(str, enum.Enum):
    receipt = "receipt"
    delivery = "delivery"
    purchase_order = "purchase_order"
    adjustment = "adjustment"
    transfer = "transfer"

class POStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    approved = "approved"
    partially_received = "partially_received"
    fully_received = "fully_received"
    partial = "partial"
    delivered = "delivered"
    cancelled = "cancelled"

class POLineStatus(str, enum.Enum):
    open = "open"
    partially_received = "partially_received"
    fully_received = "fully_received"

class ReceiptStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"

class QualityStatus(str, enum.Enum):
    accepted = "accepted"
    rejected = "rejected"
    pending_inspection = "pending_inspection"

class DeliveryLineStatus(str, enum.Enum):
    ok = "ok"
    short = "short"
    over = "over"
    damaged = "damaged"

class DeliveryStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    issues = "issues"

class IssueType(str, enum.Enum):
    short = "short"
    over = "over"
    damaged = "damaged"

class IssueStatus(str, enum.Enum):
    open = "open"
    resolved = "resolved"
    closed = "closed"
