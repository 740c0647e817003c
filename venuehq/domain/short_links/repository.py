"""Short link repository - Database operations for links, aliases and clicks"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models_short_link import ShortLink, ShortLinkAlias, ShortLinkClick


class ShortLinkRepository:
    """Repository for short link database operations"""

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

    @staticmethod
    def list_links(db: Session, link_type: Optional[str] = None) -> list[ShortLink]:
        query = db.query(ShortLink).options(selectinload(ShortLink.aliases))
        if link_type:
            query = query.filter(ShortLink.link_type == link_type)
        return query.order_by(ShortLink.created_at.desc(), ShortLink.id.desc()).all()

    @staticmethod
    def get_link(db: Session, link_id: int) -> Optional[ShortLink]:
        return db.query(ShortLink).options(selectinload(ShortLink.aliases)).filter(ShortLink.id == link_id).first()

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[ShortLink]:
        return db.query(ShortLink).filter(ShortLink.short_code == code).first()

    @staticmethod
    def get_by_destination(db: Session, destination_url: str) -> Optional[ShortLink]:
        return (
            db.query(ShortLink)
            .filter(ShortLink.destination_url == destination_url)
            .order_by(ShortLink.id)
            .first()
        )

    @staticmethod
    def get_alias(db: Session, alias_code: str) -> Optional[ShortLinkAlias]:
        return db.query(ShortLinkAlias).filter(ShortLinkAlias.alias_code == alias_code).first()

    @staticmethod
    def get_alias_by_id(db: Session, alias_id: int) -> Optional[ShortLinkAlias]:
        return db.query(ShortLinkAlias).filter(ShortLinkAlias.id == alias_id).first()

    @staticmethod
    def code_in_use(db: Session, code: str) -> bool:
        if db.query(ShortLink.id).filter(ShortLink.short_code == code).first():
            return True
        return db.query(ShortLinkAlias.id).filter(ShortLinkAlias.alias_code == code).first() is not None

    @staticmethod
    def clicks_since(db: Session, since: datetime, link_id: Optional[int] = None) -> list[ShortLinkClick]:
        query = db.query(ShortLinkClick).filter(ShortLinkClick.clicked_at >= since)
        if link_id:
            query = query.filter(ShortLinkClick.short_link_id == link_id)
        return query.order_by(ShortLinkClick.clicked_at).all()
