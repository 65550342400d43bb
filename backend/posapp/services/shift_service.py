# Overview: Service-layer operations for cashier shifts.

"""
Shift Tracker

DESIGN PRINCIPLES:
- One open shift (end_time IS NULL) per cashier; the partial unique index
  uq_shifts_one_open_per_cashier backs the application check, so two racing
  start requests cannot both succeed
- Running counters (total_sales, transaction_count) are bumped in-database by
  apply_sale_to_open_shift; they are a live view only
- end_shift recomputes both counters from completed transactions in
  [start_time, now]; that recompute is the number of record
- Closed shifts are never reopened
"""

from datetime import datetime

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import NotFoundError, ShiftAlreadyActiveError, ShiftAlreadyEndedError
from ..models import Shift, Transaction
from ..validation import ValidationError
from posapp.time_utils import utcnow
from .concurrency import lock_for_update, unit_of_work
from .user_service import require_user


def get_current_shift(cashier_id: int) -> Shift | None:
    """The cashier's open shift, or None."""
    return (
        db.session.query(Shift)
        .filter(Shift.cashier_id == cashier_id, Shift.end_time.is_(None))
        .first()
    )


def get_shift_history(cashier_id: int | None = None) -> list[Shift]:
    """All shifts (open one included), most recent start first."""
    query = db.session.query(Shift)
    if cashier_id is not None:
        query = query.filter(Shift.cashier_id == cashier_id)
    return query.order_by(Shift.start_time.desc(), Shift.id.desc()).all()


def get_shift(shift_id: int) -> Shift | None:
    return db.session.get(Shift, shift_id)


def start_shift(cashier_id: int, opening_cash_cents: int) -> Shift:
    """
    Open a new shift for a cashier.

    Raises:
        NotFoundError: cashier does not exist
        ShiftAlreadyActiveError: cashier already has an open shift
    """
    if opening_cash_cents < 0:
        raise ValidationError("opening_cash cannot be negative")

    require_user(cashier_id, entity="cashier")

    existing = get_current_shift(cashier_id)
    if existing:
        raise ShiftAlreadyActiveError(
            f"Cashier {cashier_id} already has an active shift (shift {existing.id})",
            details={"cashier_id": cashier_id, "shift_id": existing.id},
        )

    now = utcnow()
    shift = Shift(
        cashier_id=cashier_id,
        start_time=now,
        end_time=None,
        opening_cash_cents=opening_cash_cents,
        closing_cash_cents=None,
        total_sales_cents=0,
        transaction_count=0,
        created_at=now,
    )
    db.session.add(shift)
    try:
        db.session.commit()
    except IntegrityError:
        # Partial unique index rejected a concurrent second open shift
        db.session.rollback()
        raise ShiftAlreadyActiveError(
            f"Cashier {cashier_id} already has an active shift",
            details={"cashier_id": cashier_id},
        )

    current_app.logger.info("Shift %s started for cashier %s", shift.id, cashier_id)
    return shift


def _completed_sales_between(cashier_id: int, start: datetime, end: datetime) -> tuple[int, int]:
    total, count = (
        db.session.query(
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.count(Transaction.id),
        )
        .filter(
            Transaction.cashier_id == cashier_id,
            Transaction.status == "completed",
            Transaction.created_at >= start,
            Transaction.created_at <= end,
        )
        .one()
    )
    return int(total or 0), int(count or 0)


def end_shift(shift_id: int, closing_cash_cents: int) -> Shift:
    """
    Close a shift.

    total_sales and transaction_count are recomputed from completed
    transactions in [start_time, now], replacing the running counters.

    Raises:
        NotFoundError: shift does not exist
        ShiftAlreadyEndedError: shift was already closed
    """
    if closing_cash_cents < 0:
        raise ValidationError("closing_cash cannot be negative")

    with unit_of_work():
        shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
        if not shift:
            raise NotFoundError("shift", shift_id)
        if shift.end_time is not None:
            raise ShiftAlreadyEndedError(
                f"Shift {shift_id} has already ended",
                details={"shift_id": shift_id},
            )

        now = utcnow()
        total_cents, count = _completed_sales_between(shift.cashier_id, shift.start_time, now)

        # Guarded on end_time IS NULL so a concurrent close cannot win twice
        result = db.session.execute(
            update(Shift)
            .where(Shift.id == shift_id, Shift.end_time.is_(None))
            .values(
                end_time=now,
                closing_cash_cents=closing_cash_cents,
                total_sales_cents=total_cents,
                transaction_count=count,
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise ShiftAlreadyEndedError(
                f"Shift {shift_id} has already ended",
                details={"shift_id": shift_id},
            )

    shift = db.session.get(Shift, shift_id, populate_existing=True)
    current_app.logger.info(
        "Shift %s ended: %s transactions, total_sales_cents=%s",
        shift_id, count, total_cents,
    )
    return shift


def apply_sale_to_open_shift(cashier_id: int, amount_cents: int, count_delta: int) -> Shift | None:
    """
    Add amount_cents / count_delta to the cashier's open shift counters.

    Used by the transaction engine (+total, +1 on sale; -total, -1 on
    refund). The increment happens in the database, not in Python. Returns
    the shift touched, or None when the cashier has no open shift. Does not
    commit.
    """
    shift = get_current_shift(cashier_id)
    if shift is None:
        return None

    result = db.session.execute(
        update(Shift)
        .where(Shift.id == shift.id, Shift.end_time.is_(None))
        .values(
            total_sales_cents=Shift.total_sales_cents + amount_cents,
            transaction_count=Shift.transaction_count + count_delta,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    return db.session.get(Shift, shift.id, populate_existing=True)
