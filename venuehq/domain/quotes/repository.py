"""Quote repository - Database operations for quotes"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models_invoice import Quote


class QuoteRepository:
    """Repository for quote database operations"""

    @staticmethod
    def save(db: Session, quote: Quote) -> Quote:
        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    @staticmethod
    def delete(db: Session, quote: Quote) -> None:
        db.delete(quote)
        db.commit()

    @staticmethod
    def get_quote(db: Session, quote_id: int) -> Optional[Quote]:
        return db.query(Quote).options(joinedload(Quote.vendor)).filter(Quote.id == quote_id).first()

    @staticmethod
    def get_by_number(db: Session, quote_number: str) -> Optional[Quote]:
        return db.query(Quote).filter(Quote.quote_number == quote_number).first()

    @staticmethod
    def count_quotes(db: Session) -> int:
        return db.query(func.count(Quote.id)).scalar()

    @staticmethod
    def list_quotes(db: Session, status: Optional[str] = None) -> list[Quote]:
        query = db.query(Quote).options(joinedload(Quote.vendor))
        if status:
            query = query.filter(Quote.status == status)
        return query.order_by(Quote.quote_date.desc(), Quote.id.desc()).all()

    @staticmethod
    def lapsed_quotes(db: Session, today: date) -> list[Quote]:
        return db.query(Quote).filter(Quote.status == "sent", Quote.valid_until < today).all()

    @staticmethod
    def totals_by_status(db: Session) -> dict[str, tuple[float, int]]:
        rows = (
            db.query(Quote.status, func.coalesce(func.sum(Quote.total_amount), 0), func.count(Quote.id))
            .group_by(Quote.status)
            .all()
        )
        return {status: (float(total), count) for status, total, count in rows}
