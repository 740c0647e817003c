"""Customer service - Business logic for customer records"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import Customer, User
from ...shared.validators import validate_email, validate_uk_phone
from ...utils.sanitization import sanitize_search_term, validate_and_sanitize_input
from .repository import CustomerRepository
from .schemas import CustomerCreate, CustomerUpdate

logger = logging.getLogger(__name__)


def normalize_phone_or_400(phone: Optional[str]) -> Optional[str]:
    try:
        return validate_uk_phone(phone)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid phone number") from e


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def list_customers(self, search: Optional[str], page: int = 1, page_size: int = 50):
        return self.repo.list_customers(self.db, sanitize_search_term(search), page, page_size)

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.repo.get_customer(self.db, customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")
        return customer

    def create_customer(self, data: CustomerCreate, user: Optional[User] = None) -> Customer:
        if data.mobile_number and self.repo.get_by_phone(self.db, data.mobile_number):
            raise HTTPException(status_code=409, detail="A customer with this mobile number already exists")
        customer = self.repo.create_customer(
            self.db,
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            mobile_number=data.mobile_number,
            date_of_birth=data.date_of_birth,
            notes=validate_and_sanitize_input(data.notes, max_length=2000),
            sms_opt_in=data.sms_opt_in,
        )
        log_audit_event(self.db, user, "create", "customer", customer.id)
        logger.info(f"✅ Customer created: {customer.id}")
        return customer

    def update_customer(self, customer_id: int, data: CustomerUpdate, user: Optional[User] = None) -> Customer:
        customer = self.get_customer(customer_id)
        if data.mobile_number and data.mobile_number != customer.mobile_number:
            existing = self.repo.get_by_phone(self.db, data.mobile_number)
            if existing and existing.id != customer.id:
                raise HTTPException(status_code=409, detail="A customer with this mobile number already exists")

        updates = data.model_dump(exclude_unset=True)
        if "notes" in updates:
            updates["notes"] = validate_and_sanitize_input(updates["notes"], max_length=2000)
        customer = self.repo.update_customer(self.db, customer, **updates)
        log_audit_event(self.db, user, "update", "customer", customer.id, {"fields": sorted(updates)})
        return customer

    def delete_customer(self, customer_id: int, user: Optional[User] = None) -> None:
        customer = self.get_customer(customer_id)
        if customer.bookings:
            raise HTTPException(status_code=400, detail="Customers with bookings cannot be deleted")
        self.repo.delete_customer(self.db, customer)
        log_audit_event(self.db, user, "delete", "customer", customer_id)

    def set_sms_opt_in(self, customer_id: int, opt_in: bool, user: Optional[User] = None) -> Customer:
        customer = self.get_customer(customer_id)
        return self.apply_sms_preference(customer, opt_in, user)

    def apply_sms_preference(self, customer: Customer, opt_in: bool, user: Optional[User] = None) -> Customer:
        customer.sms_opt_in = opt_in
        customer.sms_opt_out_at = None if opt_in else datetime.utcnow()
        self.db.commit()
        self.db.refresh(customer)
        log_audit_event(self.db, user, "update", "customer_sms_preference", customer.id, {"sms_opt_in": opt_in})
        logger.info(f"📱 Customer {customer.id} SMS opt-in set to {opt_in}")
        return customer

    def find_or_create_customer(
        self,
        first_name: str,
        last_name: Optional[str],
        phone: str,
        email: Optional[str] = None,
        sms_opt_in: bool = True,
    ) -> Customer:
        """Match on normalised phone, filling gaps on the existing record"""
        mobile_number = normalize_phone_or_400(phone)
        if not mobile_number:
            raise HTTPException(status_code=400, detail="Invalid phone number")
        try:
            email = validate_email(email)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        customer = self.repo.get_by_phone(self.db, mobile_number)
        if customer:
            updates = {}
            if email and not customer.email:
                updates["email"] = email
            if last_name and not customer.last_name:
                updates["last_name"] = last_name
            if updates:
                customer = self.repo.update_customer(self.db, customer, **updates)
            return customer

        customer = self.repo.create_customer(
            self.db,
            first_name=first_name.strip(),
            last_name=last_name.strip() if last_name else None,
            email=email,
            mobile_number=mobile_number,
            sms_opt_in=sms_opt_in,
        )
        logger.info(f"✅ Created customer {customer.id} from booking details")
        return customer
