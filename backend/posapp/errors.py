"""
Service-layer error kinds.

Every failure a service raises on purpose is a ServiceError carrying a
message, a details dict for the caller to render, and the HTTP status the
routes map it to.
"""


class ServiceError(Exception):
    """Base for expected business-rule failures."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class NotFoundError(ServiceError):
    status_code = 404

    def __init__(self, entity: str, entity_id, message: str | None = None):
        super().__init__(
            message or f"{entity.capitalize()} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(ServiceError):
    status_code = 409

    def __init__(self, variant_id: int, available: int, requested: int, name: str | None = None):
        label = name or f"variant {variant_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
            details={"variant_id": variant_id, "available": available, "requested": requested},
        )
        self.variant_id = variant_id
        self.available = available
        self.requested = requested


class InsufficientPaymentError(ServiceError):
    status_code = 400

    def __init__(self, total_cents: int, payment_cents: int):
        from .money import cents_to_number

        super().__init__(
            "Payment amount is less than the transaction total",
            details={
                "total_amount": cents_to_number(total_cents),
                "payment_amount": cents_to_number(payment_cents),
            },
        )
        self.total_cents = total_cents
        self.payment_cents = payment_cents


class AlreadyRefundedError(ServiceError):
    status_code = 409


class ShiftAlreadyActiveError(ServiceError):
    status_code = 409


class ShiftAlreadyEndedError(ServiceError):
    status_code = 409


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403
