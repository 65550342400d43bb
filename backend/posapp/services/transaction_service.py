# Overview: Service-layer operations for sales transactions and refunds.

"""
Transaction Engine

create_transaction and refund_transaction each run as one unit of work:
transaction row, item rows, stock changes and the open-shift counter update
commit together or not at all.

All arithmetic is integer cents:
- item total   = unit_price * quantity - item discount
- subtotal     = sum(item totals)
- tax          = (subtotal - discount) * TAX_RATE_BPS / 10000, half-up
- total        = subtotal - discount + tax
- change       = payment - total   (payment < total is rejected)
"""

import secrets
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..errors import (
    NotFoundError,
    InsufficientStockError,
    InsufficientPaymentError,
    AlreadyRefundedError,
)
from ..models import Customer, ProductVariant, Transaction, TransactionItem, PAYMENT_METHODS
from ..money import apply_rate_bps
from ..validation import ValidationError
from posapp.time_utils import utcnow
from .catalog_service import decrement_stock, restore_stock
from .concurrency import lock_for_update, unit_of_work
from .shift_service import apply_sale_to_open_shift
from .user_service import require_user


@dataclass(frozen=True)
class LineItemInput:
    variant_id: int
    quantity: int
    unit_price_cents: int
    discount_cents: int = 0

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity - self.discount_cents


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int


def compute_totals(items: list[LineItemInput], discount_cents: int = 0, tax_rate_bps: int = 0) -> Totals:
    """Pure price computation; raises ValidationError on impossible discounts."""
    for index, item in enumerate(items):
        if item.total_cents < 0:
            raise ValidationError(
                f"Item {index + 1}: discount exceeds line amount",
                details={"item_index": index, "variant_id": item.variant_id},
            )

    subtotal = sum(item.total_cents for item in items)
    if discount_cents > subtotal:
        raise ValidationError(
            "Transaction discount exceeds subtotal",
            details={"subtotal_cents": subtotal, "discount_cents": discount_cents},
        )

    taxable = subtotal - discount_cents
    tax = apply_rate_bps(taxable, tax_rate_bps)
    return Totals(
        subtotal_cents=subtotal,
        discount_cents=discount_cents,
        tax_cents=tax,
        total_cents=taxable + tax,
    )


def generate_transaction_number() -> str:
    """TXN-<utc timestamp>-<random>; uniqueness is checked before insert."""
    for _ in range(5):
        candidate = f"TXN-{utcnow():%Y%m%d%H%M%S}-{secrets.token_hex(4).upper()}"
        exists = db.session.query(Transaction.id).filter_by(transaction_number=candidate).first()
        if not exists:
            return candidate
    raise RuntimeError("Could not allocate a unique transaction number")


def _validate_items(items: list[LineItemInput]) -> None:
    """
    Existence and stock prechecks, in list order, before any write.

    A variant listed twice is checked against what the earlier lines leave.
    """
    remaining: dict[int, int] = {}
    for item in items:
        if item.quantity <= 0:
            raise ValidationError("quantity must be > 0", details={"variant_id": item.variant_id})
        if item.unit_price_cents <= 0:
            raise ValidationError("unit_price must be > 0", details={"variant_id": item.variant_id})
        if item.discount_cents < 0:
            raise ValidationError("discount_amount must be >= 0", details={"variant_id": item.variant_id})

        variant = db.session.get(ProductVariant, item.variant_id)
        if variant is None:
            raise NotFoundError("product variant", item.variant_id)

        available = remaining.get(variant.id, variant.stock_quantity)
        if available < item.quantity:
            raise InsufficientStockError(
                variant_id=variant.id,
                available=available,
                requested=item.quantity,
                name=variant.variant_name,
            )
        remaining[variant.id] = available - item.quantity


def create_transaction(
    *,
    cashier_id: int,
    items: list[LineItemInput],
    payment_method: str,
    payment_cents: int,
    discount_cents: int = 0,
    customer_id: int | None = None,
    notes: str | None = None,
    tax_rate_bps: int | None = None,
) -> Transaction:
    """
    Settle a sale.

    Raises (all before any write):
        ValidationError: empty cart, bad amounts, unknown payment method
        NotFoundError: cashier, customer or variant missing
        InsufficientStockError: a line asks for more than is on hand
        InsufficientPaymentError: payment_cents < total

    A stock race lost after the prechecks raises InsufficientStockError from
    the guarded UPDATE and rolls the whole sale back.
    """
    if not items:
        raise ValidationError("Transaction must contain at least one item")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if payment_cents <= 0:
        raise ValidationError("payment_amount must be > 0")
    if discount_cents < 0:
        raise ValidationError("discount_amount must be >= 0")
    if tax_rate_bps is None:
        tax_rate_bps = int(current_app.config.get("TAX_RATE_BPS", 0))

    with unit_of_work():
        require_user(cashier_id, entity="cashier")
        if customer_id is not None and not db.session.get(Customer, customer_id):
            raise NotFoundError("customer", customer_id)

        _validate_items(items)

        totals = compute_totals(items, discount_cents, tax_rate_bps)
        if payment_cents < totals.total_cents:
            raise InsufficientPaymentError(totals.total_cents, payment_cents)

        now = utcnow()
        transaction = Transaction(
            transaction_number=generate_transaction_number(),
            customer_id=customer_id,
            cashier_id=cashier_id,
            subtotal_cents=totals.subtotal_cents,
            discount_cents=totals.discount_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            payment_method=payment_method,
            payment_cents=payment_cents,
            change_cents=payment_cents - totals.total_cents,
            status="completed",
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        db.session.add(transaction)
        db.session.flush()

        for item in items:
            db.session.add(TransactionItem(
                transaction_id=transaction.id,
                product_variant_id=item.variant_id,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                discount_cents=item.discount_cents,
                total_price_cents=item.total_cents,
                created_at=now,
            ))
            decrement_stock(item.variant_id, item.quantity)

        apply_sale_to_open_shift(cashier_id, totals.total_cents, 1)

    current_app.logger.info(
        "Transaction %s created by cashier %s: total_cents=%s items=%s",
        transaction.transaction_number, cashier_id, transaction.total_cents, len(items),
    )
    return transaction


def refund_transaction(transaction_id: int) -> Transaction:
    """
    Refund a completed transaction: restore stock for every item, mark it
    refunded and take it back out of the cashier's open shift.

    Raises:
        NotFoundError: transaction does not exist
        AlreadyRefundedError: transaction is refunded (or otherwise not completed)
    """
    with unit_of_work():
        transaction = lock_for_update(
            db.session.query(Transaction).filter_by(id=transaction_id)
        ).first()
        if not transaction:
            raise NotFoundError("transaction", transaction_id)

        if transaction.status == "refunded":
            raise AlreadyRefundedError(
                "Transaction is already refunded",
                details={"transaction_id": transaction_id},
            )
        if transaction.status != "completed":
            raise AlreadyRefundedError(
                f"Transaction is {transaction.status} and cannot be refunded",
                details={"transaction_id": transaction_id, "status": transaction.status},
            )

        # Status flip first, guarded, so a concurrent refund loses cleanly
        result = db.session.execute(
            update(Transaction)
            .where(Transaction.id == transaction_id, Transaction.status == "completed")
            .values(status="refunded", updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise AlreadyRefundedError(
                "Transaction is already refunded",
                details={"transaction_id": transaction_id},
            )

        items = db.session.query(TransactionItem).filter_by(transaction_id=transaction_id).all()
        for item in items:
            restore_stock(item.product_variant_id, item.quantity)

        apply_sale_to_open_shift(transaction.cashier_id, -transaction.total_cents, -1)

    transaction = db.session.get(Transaction, transaction_id, populate_existing=True)
    current_app.logger.info("Transaction %s refunded", transaction.transaction_number)
    return transaction


def get_transactions(
    cashier_id: int | None = None,
    customer_id: int | None = None,
    status: str | None = None,
) -> list[Transaction]:
    query = db.session.query(Transaction)
    if cashier_id is not None:
        query = query.filter(Transaction.cashier_id == cashier_id)
    if customer_id is not None:
        query = query.filter(Transaction.customer_id == customer_id)
    if status is not None:
        query = query.filter(Transaction.status == status)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


def get_transaction_by_id(transaction_id: int) -> Transaction | None:
    return db.session.get(Transaction, transaction_id)


def get_transaction_items(transaction_id: int) -> list[TransactionItem]:
    if not db.session.get(Transaction, transaction_id):
        raise NotFoundError("transaction", transaction_id)
    return (
        db.session.query(TransactionItem)
        .filter_by(transaction_id=transaction_id)
        .order_by(TransactionItem.id)
        .all()
    )
