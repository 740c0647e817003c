"""Short link service - Link creation, alias management, redirects and click analytics"""

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import User
from ...models_short_link import ShortLink, ShortLinkAlias, ShortLinkClick
from ...shared.dates import now_local
from .repository import ShortLinkRepository
from .schemas import AliasCreate, ShortLinkCreate, ShortLinkUpdate
from .tracking import PERIODS, breakdown, bucket_start, daily_series, parse_browser, parse_device_type

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_lowercase + string.digits
GENERATED_CODE_LENGTH = 6
CODE_GENERATION_ATTEMPTS = 10


def generate_short_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(GENERATED_CODE_LENGTH))


class ShortLinkService:
    """Service layer for short links"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ShortLinkRepository()

    def list_links(self, link_type: Optional[str] = None) -> list[ShortLink]:
        return self.repo.list_links(self.db, link_type)

    def get_link(self, link_id: int) -> ShortLink:
        link = self.repo.get_link(self.db, link_id)
        if not link:
            raise HTTPException(status_code=404, detail="Short link not found")
        return link

    def _unique_code(self) -> str:
        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = generate_short_code()
            if not self.repo.code_in_use(self.db, code):
                return code
        raise HTTPException(status_code=503, detail="Could not generate a short code, please try again")

    def create_short_link(self, data: ShortLinkCreate, user: Optional[User] = None) -> dict:
        """Create a link, or return the existing one for the same destination"""
        existing = self.repo.get_by_destination(self.db, data.destination_url)
        if existing:
            if data.custom_code and existing.short_code != data.custom_code:
                raise HTTPException(
                    status_code=409,
                    detail=(
                        f"A short link already exists for this URL ({existing.full_url}). "
                        "Short codes can't be changed; edit or delete the existing link instead."
                    ),
                )
            return {"link": existing, "already_exists": True}

        if data.custom_code:
            if self.repo.code_in_use(self.db, data.custom_code):
                raise HTTPException(status_code=409, detail="Custom code already in use. Please choose another.")
            code = data.custom_code
        else:
            code = self._unique_code()

        link = self.repo.save(
            self.db,
            ShortLink(
                short_code=code,
                name=data.name,
                destination_url=data.destination_url,
                link_type=data.link_type,
                link_metadata=data.metadata or {},
                expires_at=data.expires_at,
                created_by=user.id if user else None,
            ),
        )
        log_audit_event(self.db, user, "create", "short_link", link.id, {"code": code})
        logger.info(f"🔗 Short link created: {code} → {data.destination_url}")
        return {"link": link, "already_exists": False}

    def update_short_link(self, link_id: int, data: ShortLinkUpdate, user: User) -> ShortLink:
        link = self.get_link(link_id)
        for field, value in data.model_dump().items():
            setattr(link, field, value)
        self.repo.save(self.db, link)
        log_audit_event(self.db, user, "update", "short_link", link.id)
        return link

    def delete_short_link(self, link_id: int, user: User) -> None:
        link = self.get_link(link_id)
        code = link.short_code
        self.repo.delete(self.db, link)
        log_audit_event(self.db, user, "delete", "short_link", link_id, {"code": code})
        logger.info(f"🗑️ Short link deleted: {code}")

    def add_alias(self, link_id: int, data: AliasCreate, user: User) -> ShortLinkAlias:
        link = self.get_link(link_id)
        if self.repo.code_in_use(self.db, data.alias_code):
            raise HTTPException(status_code=409, detail="Custom code already in use. Please choose another.")
        alias = self.repo.save(self.db, ShortLinkAlias(short_link_id=link.id, alias_code=data.alias_code))
        log_audit_event(self.db, user, "create", "short_link_alias", alias.id, {"link": link.short_code})
        return alias

    def delete_alias(self, link_id: int, alias_id: int, user: User) -> None:
        alias = self.repo.get_alias_by_id(self.db, alias_id)
        if not alias or alias.short_link_id != link_id:
            raise HTTPException(status_code=404, detail="Alias not found")
        self.repo.delete(self.db, alias)
        log_audit_event(self.db, user, "delete", "short_link_alias", alias_id)

    def resolve(
        self,
        code: str,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
        ip_address: Optional[str] = None,
        country: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ShortLink:
        """Find the link behind a code or alias and record the click"""
        code = (code or "").strip().lower()
        link = self.repo.get_by_code(self.db, code)
        if not link:
            alias = self.repo.get_alias(self.db, code)
            link = alias.short_link if alias else None
        if not link:
            raise HTTPException(status_code=404, detail="Short link not found")

        now = now or now_local()
        if link.expires_at and link.expires_at < now:
            raise HTTPException(status_code=410, detail="This link has expired")

        self.db.add(
            ShortLinkClick(
                short_link_id=link.id,
                clicked_at=now,
                user_agent=user_agent[:1000] if user_agent else None,
                referrer=referrer[:1000] if referrer else None,
                ip_address=ip_address,
                country=(country or "")[:2].upper() or None,
                device_type=parse_device_type(user_agent),
                browser=parse_browser(user_agent),
            )
        )
        link.click_count = (link.click_count or 0) + 1
        link.last_clicked_at = now
        self.db.commit()
        return link

    def get_link_analytics(self, link_id: int, days: int = 30, now: Optional[datetime] = None) -> dict:
        link = self.get_link(link_id)
        now = now or now_local()
        start = (now - timedelta(days=days - 1)).date()
        clicks = self.repo.clicks_since(self.db, datetime.combine(start, datetime.min.time()), link.id)
        return {
            "short_code": link.short_code,
            "days": days,
            "total_clicks": len(clicks),
            "unique_visitors": len({c.ip_address for c in clicks if c.ip_address}),
            "daily": daily_series([c.clicked_at for c in clicks], start, now.date()),
            "devices": breakdown([c.device_type for c in clicks]),
            "browsers": breakdown([c.browser for c in clicks]),
        }

    def get_volume(self, period: str = "day", days: int = 30, now: Optional[datetime] = None) -> dict:
        if period not in PERIODS:
            raise HTTPException(status_code=400, detail=f"Period must be one of: {', '.join(PERIODS)}")
        now = now or now_local()
        clicks = self.repo.clicks_since(self.db, now - timedelta(days=days))

        buckets: dict[datetime, int] = {}
        for click in clicks:
            key = bucket_start(click.clicked_at, period)
            buckets[key] = buckets.get(key, 0) + 1

        return {
            "period": period,
            "days": days,
            "total_clicks": len(clicks),
            "buckets": [{"period_start": key, "clicks": buckets[key]} for key in sorted(buckets)],
        }
