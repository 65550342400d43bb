from __future__ import annotations

from ..extensions import db
from posapp.money import cents_to_number
from posapp.time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("cash", "card", "qr_code", "e_wallet")
TRANSACTION_STATUSES = ("pending", "completed", "cancelled", "refunded")


class Transaction(db.Model):
    """
    Completed sale (or its refund).

    Created atomically with its items by transaction_service; afterwards the
    only permitted change is the status transition completed -> refunded.

    INVARIANTS (all amounts in cents):
    - total_amount = subtotal - discount_amount + tax_amount
    - change_amount = payment_amount - total_amount
    - payment_amount >= total_amount
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_cashier_created", "cashier_id", "created_at"),
        db.Index("ix_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_number = db.Column(db.String(50), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    subtotal_cents = db.Column(db.BigInteger, nullable=False)
    discount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    tax_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cents = db.Column(db.BigInteger, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_cents = db.Column(db.BigInteger, nullable=False)
    change_cents = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="completed")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    cashier = db.relationship("User", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "subtotal": cents_to_number(self.subtotal_cents),
            "discount_amount": cents_to_number(self.discount_cents),
            "tax_amount": cents_to_number(self.tax_cents),
            "total_amount": cents_to_number(self.total_cents),
            "payment_method": self.payment_method,
            "payment_amount": cents_to_number(self.payment_cents),
            "change_amount": cents_to_number(self.change_cents),
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TransactionItem(db.Model):
    """Line item. total_price = unit_price * quantity - discount_amount."""
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transaction_items_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)
    discount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_price_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    transaction = db.relationship("Transaction", backref=db.backref("items", lazy=True, order_by="TransactionItem.id"))
    product_variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_variant_id": self.product_variant_id,
            "quantity": self.quantity,
            "unit_price": cents_to_number(self.unit_price_cents),
            "discount_amount": cents_to_number(self.discount_cents),
            "total_price": cents_to_number(self.total_price_cents),
            "created_at": to_utc_z(self.created_at),
        }
