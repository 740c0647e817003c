"""Customer repository - Database operations for customers"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Customer


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def list_customers(
        db: Session, search: Optional[str], page: int, page_size: int
    ) -> tuple[list[Customer], int]:
        query = db.query(Customer)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Customer.first_name.ilike(pattern),
                    Customer.last_name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.mobile_number.ilike(pattern),
                )
            )
        total = query.count()
        customers = (
            query.order_by(Customer.last_name, Customer.first_name)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return customers, total

    @staticmethod
    def get_customer(db: Session, customer_id: int) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def get_by_phone(db: Session, mobile_number: str) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.mobile_number == mobile_number).first()

    @staticmethod
    def create_customer(db: Session, **customer_data) -> Customer:
        customer = Customer(**customer_data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def update_customer(db: Session, customer: Customer, **updates) -> Customer:
        for key, value in updates.items():
            if value is not None and hasattr(customer, key):
                setattr(customer, key, value)
        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def delete_customer(db: Session, customer: Customer) -> None:
        db.delete(customer)
        db.commit()
