# Overview: Service-layer operations for customers.

from ..extensions import db
from ..errors import NotFoundError
from ..models import Customer, Transaction


def create_customer(
    name: str,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
) -> Customer:
    customer = Customer(name=name, email=email, phone=phone, address=address)
    db.session.add(customer)
    db.session.commit()
    return customer


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name, Customer.id).all()


def get_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)


def get_customer_purchase_history(customer_id: int) -> list[Transaction]:
    """Customer's transactions, newest first. Items are reachable via .items."""
    if not db.session.get(Customer, customer_id):
        raise NotFoundError("customer", customer_id)

    return (
        db.session.query(Transaction)
        .filter_by(customer_id=customer_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )
