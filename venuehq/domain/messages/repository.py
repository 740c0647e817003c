"""Message repository - Database operations for the SMS log and templates"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Customer
from ...models_sms import Message, MessageTemplate


class MessageRepository:
    """Repository for SMS log and template database operations"""

    @staticmethod
    def list_for_customer(db: Session, customer_id: int, limit: int) -> list[Message]:
        return (
            db.query(Message)
            .filter(Message.customer_id == customer_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_bulk_recipients(db: Session, customer_ids: Optional[list[int]], search: Optional[str]) -> list[Customer]:
        query = db.query(Customer)
        if customer_ids is not None:
            query = query.filter(Customer.id.in_(customer_ids))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Customer.first_name.ilike(pattern), Customer.last_name.ilike(pattern)))
        return query.order_by(Customer.id).all()

    @staticmethod
    def list_templates(db: Session) -> list[MessageTemplate]:
        return db.query(MessageTemplate).order_by(MessageTemplate.key).all()

    @staticmethod
    def get_template(db: Session, template_id: int) -> Optional[MessageTemplate]:
        return db.query(MessageTemplate).filter(MessageTemplate.id == template_id).first()

    @staticmethod
    def get_template_by_key(db: Session, key: str) -> Optional[MessageTemplate]:
        return db.query(MessageTemplate).filter(MessageTemplate.key == key).first()

    @staticmethod
    def save(db: Session, row):
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def delete(db: Session, row) -> None:
        db.delete(row)
        db.commit()
