# Overview: Read-only reporting rollups over transactions, items, variants and shifts.

"""
Reporting

Every report is an explicit dataclass record; only status='completed'
transactions contribute. Amounts are cents internally and converted in the
records' to_dict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Product, ProductVariant, Shift, Transaction, TransactionItem, User
from ..money import cents_to_number
from posapp.time_utils import day_bounds, to_utc_z, utcnow


@dataclass(frozen=True)
class PaymentMethodTotal:
    payment_method: str
    total_cents: int
    count: int

    def to_dict(self) -> dict:
        return {
            "payment_method": self.payment_method,
            "total_amount": cents_to_number(self.total_cents),
            "count": self.count,
        }


@dataclass(frozen=True)
class CashierPerformance:
    cashier_id: int
    cashier_name: str
    total_sales_cents: int
    transaction_count: int

    def to_dict(self) -> dict:
        return {
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier_name,
            "total_sales": cents_to_number(self.total_sales_cents),
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class DailySales:
    date: str
    total_sales_cents: int
    transaction_count: int

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "total_sales": cents_to_number(self.total_sales_cents),
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class SalesReport:
    start_date: date
    end_date: date
    total_sales_cents: int
    transaction_count: int
    average_transaction_cents: int
    payment_methods: list[PaymentMethodTotal] = field(default_factory=list)
    cashier_performance: list[CashierPerformance] = field(default_factory=list)
    daily_breakdown: list[DailySales] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "period": {
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            },
            "total_sales": cents_to_number(self.total_sales_cents),
            "transaction_count": self.transaction_count,
            "average_transaction": cents_to_number(self.average_transaction_cents),
            "payment_methods": [p.to_dict() for p in self.payment_methods],
            "cashier_performance": [c.to_dict() for c in self.cashier_performance],
            "daily_breakdown": [d.to_dict() for d in self.daily_breakdown],
        }


@dataclass(frozen=True)
class TopSellingProduct:
    product_id: int
    product_name: str
    variant_id: int
    variant_name: str
    sku: str
    total_quantity: int
    total_revenue_cents: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "variant_id": self.variant_id,
            "variant_name": self.variant_name,
            "sku": self.sku,
            "total_quantity": self.total_quantity,
            "total_revenue": cents_to_number(self.total_revenue_cents),
        }


@dataclass(frozen=True)
class ProductRevenue:
    product_id: int
    product_name: str
    variant_name: str
    total_quantity: int
    total_revenue_cents: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "total_quantity": self.total_quantity,
            "total_revenue": cents_to_number(self.total_revenue_cents),
        }


@dataclass(frozen=True)
class ProfitReport:
    total_revenue_cents: int
    # Unit cost is not tracked, so cost and profit stay zero
    total_cost_cents: int = 0
    gross_profit_cents: int = 0
    product_analysis: list[ProductRevenue] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_revenue": cents_to_number(self.total_revenue_cents),
            "total_cost": cents_to_number(self.total_cost_cents),
            "gross_profit": cents_to_number(self.gross_profit_cents),
            "profit_margin": 0,
            "product_analysis": [p.to_dict() for p in self.product_analysis],
        }


@dataclass(frozen=True)
class InventoryReportRow:
    variant_id: int
    product_id: int
    product_name: str
    variant_name: str
    sku: str
    current_stock: int
    low_stock_threshold: int
    price_cents: int

    @property
    def stock_value_cents(self) -> int:
        return self.price_cents * self.current_stock

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "variant_id": self.variant_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "sku": self.sku,
            "current_stock": self.current_stock,
            "low_stock_threshold": self.low_stock_threshold,
            "price": cents_to_number(self.price_cents),
            "stock_value": cents_to_number(self.stock_value_cents),
            "is_low_stock": self.is_low_stock,
        }


@dataclass(frozen=True)
class RecentTransaction:
    id: int
    transaction_number: str
    total_cents: int
    payment_method: str
    created_at: datetime
    cashier_name: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "total_amount": cents_to_number(self.total_cents),
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "cashier_name": self.cashier_name,
        }


@dataclass(frozen=True)
class DashboardStats:
    today_sales_cents: int
    today_transactions: int
    active_shifts: int
    low_stock_alerts: int
    recent_transactions: list[RecentTransaction] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "today_sales": cents_to_number(self.today_sales_cents),
            "today_transactions": self.today_transactions,
            "active_shifts": self.active_shifts,
            "low_stock_alerts": self.low_stock_alerts,
            "recent_transactions": [t.to_dict() for t in self.recent_transactions],
        }


def _completed_between(start: datetime, end: datetime):
    return (
        Transaction.status == "completed",
        Transaction.created_at >= start,
        Transaction.created_at < end,
    )


def get_sales_report(start_date: date, end_date: date, cashier_id: int | None = None) -> SalesReport:
    """Sales between two dates, both days inclusive."""
    start, end = day_bounds(start_date, end_date)
    conditions = list(_completed_between(start, end))
    if cashier_id is not None:
        conditions.append(Transaction.cashier_id == cashier_id)

    total, count = (
        db.session.query(
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.count(Transaction.id),
        )
        .filter(*conditions)
        .one()
    )
    total = int(total or 0)
    count = int(count or 0)
    # Integer half-up average in cents
    average = (total + count // 2) // count if count else 0

    payment_rows = (
        db.session.query(
            Transaction.payment_method,
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.count(Transaction.id),
        )
        .filter(*conditions)
        .group_by(Transaction.payment_method)
        .order_by(Transaction.payment_method)
        .all()
    )

    day_col = func.date(Transaction.created_at)
    daily_rows = (
        db.session.query(
            day_col,
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.count(Transaction.id),
        )
        .filter(*conditions)
        .group_by(day_col)
        .order_by(day_col)
        .all()
    )

    cashier_rows = []
    if cashier_id is None:
        sales_sum = func.coalesce(func.sum(Transaction.total_cents), 0)
        cashier_rows = (
            db.session.query(
                Transaction.cashier_id,
                User.full_name,
                sales_sum,
                func.count(Transaction.id),
            )
            .join(User, User.id == Transaction.cashier_id)
            .filter(*conditions)
            .group_by(Transaction.cashier_id, User.full_name)
            .order_by(sales_sum.desc())
            .all()
        )

    return SalesReport(
        start_date=start_date,
        end_date=end_date,
        total_sales_cents=total,
        transaction_count=count,
        average_transaction_cents=average,
        payment_methods=[
            PaymentMethodTotal(method, int(amount), int(n)) for method, amount, n in payment_rows
        ],
        cashier_performance=[
            CashierPerformance(cid, name, int(amount), int(n)) for cid, name, amount, n in cashier_rows
        ],
        daily_breakdown=[
            DailySales(str(day), int(amount), int(n)) for day, amount, n in daily_rows
        ],
    )


def get_top_selling_products(limit: int = 10) -> list[TopSellingProduct]:
    quantity_sum = func.coalesce(func.sum(TransactionItem.quantity), 0)
    rows = (
        db.session.query(
            Product.id,
            Product.name,
            ProductVariant.id,
            ProductVariant.variant_name,
            ProductVariant.sku,
            quantity_sum,
            func.coalesce(func.sum(TransactionItem.total_price_cents), 0),
        )
        .select_from(TransactionItem)
        .join(ProductVariant, ProductVariant.id == TransactionItem.product_variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .join(Transaction, Transaction.id == TransactionItem.transaction_id)
        .filter(Transaction.status == "completed")
        .group_by(Product.id, Product.name, ProductVariant.id, ProductVariant.variant_name, ProductVariant.sku)
        .order_by(quantity_sum.desc(), ProductVariant.id)
        .limit(limit)
        .all()
    )
    return [
        TopSellingProduct(pid, pname, vid, vname, sku, int(qty), int(revenue))
        for pid, pname, vid, vname, sku, qty, revenue in rows
    ]


def get_profit_report(start_date: date, end_date: date) -> ProfitReport:
    start, end = day_bounds(start_date, end_date)
    conditions = _completed_between(start, end)

    revenue = (
        db.session.query(func.coalesce(func.sum(Transaction.total_cents), 0))
        .filter(*conditions)
        .scalar()
    )

    revenue_sum = func.coalesce(func.sum(TransactionItem.total_price_cents), 0)
    rows = (
        db.session.query(
            Product.id,
            Product.name,
            ProductVariant.variant_name,
            func.coalesce(func.sum(TransactionItem.quantity), 0),
            revenue_sum,
        )
        .select_from(TransactionItem)
        .join(Transaction, Transaction.id == TransactionItem.transaction_id)
        .join(ProductVariant, ProductVariant.id == TransactionItem.product_variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(*conditions)
        .group_by(Product.id, Product.name, ProductVariant.variant_name)
        .order_by(revenue_sum.desc())
        .all()
    )

    return ProfitReport(
        total_revenue_cents=int(revenue or 0),
        product_analysis=[
            ProductRevenue(pid, pname, vname, int(qty), int(amount))
            for pid, pname, vname, qty, amount in rows
        ],
    )


def get_inventory_report(low_stock_only: bool = False) -> list[InventoryReportRow]:
    query = (
        db.session.query(
            ProductVariant.id,
            Product.id,
            Product.name,
            ProductVariant.variant_name,
            ProductVariant.sku,
            ProductVariant.stock_quantity,
            ProductVariant.low_stock_threshold,
            ProductVariant.price_cents,
        )
        .join(Product, Product.id == ProductVariant.product_id)
    )
    if low_stock_only:
        query = query.filter(ProductVariant.stock_quantity <= ProductVariant.low_stock_threshold)

    rows = query.order_by(ProductVariant.stock_quantity, ProductVariant.id).all()
    return [InventoryReportRow(*row) for row in rows]


def get_dashboard_stats(recent_limit: int = 10) -> DashboardStats:
    today = utcnow().date()
    start, end = day_bounds(today, today)

    today_total, today_count = (
        db.session.query(
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.count(Transaction.id),
        )
        .filter(*_completed_between(start, end))
        .one()
    )

    active_shifts = (
        db.session.query(func.count(Shift.id)).filter(Shift.end_time.is_(None)).scalar()
    )

    low_stock = (
        db.session.query(func.count(ProductVariant.id))
        .filter(ProductVariant.stock_quantity <= ProductVariant.low_stock_threshold)
        .scalar()
    )

    recent_rows = (
        db.session.query(
            Transaction.id,
            Transaction.transaction_number,
            Transaction.total_cents,
            Transaction.payment_method,
            Transaction.created_at,
            User.full_name,
        )
        .join(User, User.id == Transaction.cashier_id)
        .filter(Transaction.status == "completed")
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(recent_limit)
        .all()
    )

    return DashboardStats(
        today_sales_cents=int(today_total or 0),
        today_transactions=int(today_count or 0),
        active_shifts=int(active_shifts or 0),
        low_stock_alerts=int(low_stock or 0),
        recent_transactions=[RecentTransaction(*row) for row in recent_rows],
    )
