from __future__ import annotations

from ..extensions import db
from posapp.money import cents_to_number
from posapp.time_utils import to_utc_z, utcnow


class Shift(db.Model):
    """
    Cashier shift.

    LIFECYCLE:
    - OPEN: end_time IS NULL; sales by the cashier bump the running counters
    - CLOSED: end_time set once by end_shift, which recomputes total_sales
      and transaction_count from the transactions in the shift window

    At most one open shift per cashier, enforced by the partial unique index
    below (not only in application code).
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index(
            "uq_shifts_one_open_per_cashier",
            "cashier_id",
            unique=True,
            sqlite_where=db.text("end_time IS NULL"),
            postgresql_where=db.text("end_time IS NULL"),
        ),
        db.Index("ix_shifts_cashier_start", "cashier_id", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    start_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_time = db.Column(db.DateTime, nullable=True)

    # Cash tracking (all amounts in cents)
    opening_cash_cents = db.Column(db.BigInteger, nullable=False, default=0)
    closing_cash_cents = db.Column(db.BigInteger, nullable=True)
    total_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    transaction_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    cashier = db.relationship("User", backref=db.backref("shifts", lazy=True))

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def cash_difference_cents(self) -> int | None:
        """closing - opening; compared against total_sales for reconciliation."""
        if self.closing_cash_cents is None:
            return None
        return self.closing_cash_cents - self.opening_cash_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "opening_cash": cents_to_number(self.opening_cash_cents),
            "closing_cash": cents_to_number(self.closing_cash_cents),
            "total_sales": cents_to_number(self.total_sales_cents),
            "transaction_count": self.transaction_count,
            "cash_difference": cents_to_number(self.cash_difference_cents),
            "is_open": self.is_open,
            "created_at": to_utc_z(self.created_at),
        }
