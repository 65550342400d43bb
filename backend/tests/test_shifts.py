"""
Shift tracker tests.

Verifies:
- At most one open shift per cashier, in the service and in the schema
- end_shift recomputes totals from completed transactions in the window
- History ordering and current-shift lookup
"""

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from posapp.errors import NotFoundError, ShiftAlreadyActiveError, ShiftAlreadyEndedError
from posapp.extensions import db
from posapp.models import Shift
from posapp.services import shift_service, transaction_service
from posapp.services.transaction_service import LineItemInput
from posapp.time_utils import utcnow
from posapp.validation import ValidationError


def sell_one(cashier, variant):
    return transaction_service.create_transaction(
        cashier_id=cashier.id,
        items=[LineItemInput(variant_id=variant.id, quantity=1, unit_price_cents=variant.price_cents)],
        payment_method="cash",
        payment_cents=variant.price_cents,
    )


class TestStartShift:

    def test_start_shift(self, cashier):
        shift = shift_service.start_shift(cashier.id, 10000)

        assert shift.cashier_id == cashier.id
        assert shift.end_time is None
        assert shift.opening_cash_cents == 10000
        assert shift.total_sales_cents == 0
        assert shift.transaction_count == 0
        assert shift.to_dict()["opening_cash"] == 100.00

    def test_second_open_shift_rejected(self, cashier):
        first = shift_service.start_shift(cashier.id, 10000)

        with pytest.raises(ShiftAlreadyActiveError) as exc_info:
            shift_service.start_shift(cashier.id, 5000)

        assert exc_info.value.details["shift_id"] == first.id
        assert db.session.query(Shift).filter_by(cashier_id=cashier.id).count() == 1

    def test_can_start_again_after_ending(self, cashier):
        first = shift_service.start_shift(cashier.id, 10000)
        shift_service.end_shift(first.id, 10000)

        second = shift_service.start_shift(cashier.id, 5000)

        assert second.id != first.id
        assert shift_service.get_current_shift(cashier.id).id == second.id

    def test_different_cashiers_each_get_a_shift(self, cashier, make_user):
        other = make_user("second_cashier")

        shift_service.start_shift(cashier.id, 0)
        shift_service.start_shift(other.id, 0)

        assert shift_service.get_current_shift(cashier.id) is not None
        assert shift_service.get_current_shift(other.id) is not None

    def test_unknown_cashier(self):
        with pytest.raises(NotFoundError):
            shift_service.start_shift(424242, 0)

    def test_negative_opening_cash(self, cashier):
        with pytest.raises(ValidationError):
            shift_service.start_shift(cashier.id, -1)

    def test_schema_rejects_two_open_shifts(self, cashier):
        now = utcnow()
        db.session.add(Shift(cashier_id=cashier.id, start_time=now, opening_cash_cents=0))
        db.session.add(Shift(cashier_id=cashier.id, start_time=now, opening_cash_cents=0))

        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()


class TestEndShift:

    def test_recompute_overrides_running_counters(self, cashier, make_variant):
        shift = shift_service.start_shift(cashier.id, 10000)
        sell_one(cashier, make_variant(price_cents=10000))
        sell_one(cashier, make_variant(price_cents=5000))

        # Drift the running counters
        db.session.execute(
            update(Shift).where(Shift.id == shift.id).values(total_sales_cents=1, transaction_count=99)
        )
        db.session.commit()

        closed = shift_service.end_shift(shift.id, 25000)

        assert closed.end_time is not None
        assert closed.total_sales_cents == 15000
        assert closed.transaction_count == 2
        assert closed.closing_cash_cents == 25000

        data = closed.to_dict()
        assert data["total_sales"] == 150.00
        assert data["cash_difference"] == 150.00
        assert data["is_open"] is False

    def test_refunded_transactions_excluded(self, cashier, make_variant):
        shift = shift_service.start_shift(cashier.id, 0)
        kept = sell_one(cashier, make_variant(price_cents=3000))
        refunded = sell_one(cashier, make_variant(price_cents=7000))
        transaction_service.refund_transaction(refunded.id)

        closed = shift_service.end_shift(shift.id, 3000)

        assert closed.total_sales_cents == kept.total_cents
        assert closed.transaction_count == 1

    def test_other_cashiers_sales_excluded(self, cashier, make_user, make_variant):
        other = make_user("second_cashier")
        shift = shift_service.start_shift(cashier.id, 0)
        sell_one(other, make_variant(price_cents=4000))

        closed = shift_service.end_shift(shift.id, 0)

        assert closed.total_sales_cents == 0
        assert closed.transaction_count == 0

    def test_end_twice(self, cashier):
        shift = shift_service.start_shift(cashier.id, 0)
        shift_service.end_shift(shift.id, 0)

        with pytest.raises(ShiftAlreadyEndedError):
            shift_service.end_shift(shift.id, 0)

    def test_unknown_shift(self):
        with pytest.raises(NotFoundError):
            shift_service.end_shift(424242, 0)

    def test_current_shift_cleared_after_end(self, cashier):
        shift = shift_service.start_shift(cashier.id, 0)
        shift_service.end_shift(shift.id, 0)

        assert shift_service.get_current_shift(cashier.id) is None


class TestHistory:

    def test_most_recent_first_including_open(self, cashier, make_user):
        other = make_user("second_cashier")
        first = shift_service.start_shift(cashier.id, 0)
        shift_service.end_shift(first.id, 0)
        second = shift_service.start_shift(cashier.id, 0)
        theirs = shift_service.start_shift(other.id, 0)

        mine = shift_service.get_shift_history(cashier.id)
        assert [s.id for s in mine] == [second.id, first.id]
        assert mine[0].end_time is None

        everyone = shift_service.get_shift_history()
        assert [s.id for s in everyone] == [theirs.id, second.id, first.id]

    def test_apply_sale_without_open_shift(self, cashier):
        assert shift_service.apply_sale_to_open_shift(cashier.id, 1000, 1) is None

    def test_apply_sale_increments_in_place(self, cashier):
        shift = shift_service.start_shift(cashier.id, 0)

        touched = shift_service.apply_sale_to_open_shift(cashier.id, 1250, 1)
        db.session.commit()

        assert touched.id == shift.id
        assert touched.total_sales_cents == 1250
        assert touched.transaction_count == 1
