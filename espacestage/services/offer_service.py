"""
Offer Service - internship offers posted by companies.

Visibility rules:
- students and anonymous visitors only ever see active offers
- the owning company sees all of its offers, whatever the status
- admins see everything
"""

import logging
from typing import List, Optional

from fastapi import Request
from sqlalchemy import Date, bindparam, text

from espacestage.core.auth import ensure_owner_or_admin
from espacestage.core.errors import NotFound, ValidationError
from espacestage.db.postgres import Database
from espacestage.schemas.schemas import AccountStatus, OfferCreate, OfferStatus, OfferUpdate

logger = logging.getLogger(__name__)

OFFER_SELECT = """
    SELECT o.id, o.company_account_id, o.title, o.description, o.domain, o.capacity,
           o.location, o.internship_type, o.is_paid, o.compensation_amount,
           o.start_date, o.end_date, o.status, o.created_at, o.updated_at,
           cp.company_name, cp.sector, cp.logo_url, a.email AS company_email, a.status AS company_status
"""
OFFER_FROM = """
    FROM offers o
    JOIN accounts a ON a.id = o.company_account_id
    LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
"""
APPLICATION_COUNT = """,
           (SELECT COUNT(*) FROM applications ap WHERE ap.offer_id = o.id) AS application_count
"""
NEWEST_FIRST = " ORDER BY o.created_at DESC, o.id DESC"

DATE_FIELDS = ("start_date", "end_date")


def _statement(sql: str, params: dict):
    """text() with date parameters typed, so every driver gets a proper date."""
    stmt = text(sql)
    dates = [bindparam(name, type_=Date) for name in DATE_FIELDS if name in params]
    return stmt.bindparams(*dates) if dates else stmt


class OfferService:
    def __init__(self, db: Database):
        self.db = db

    def list_active(self, domain: Optional[str] = None, internship_type: Optional[str] = None,
                    location: Optional[str] = None, paid: Optional[bool] = None,
                    search: Optional[str] = None) -> List[dict]:
        """Public listing with optional filters, newest first."""
        sql = OFFER_SELECT + OFFER_FROM + " WHERE o.status = 'active' AND a.status = 'active'"
        params = {}

        if domain:
            sql += " AND LOWER(o.domain) = LOWER(:domain)"
            params["domain"] = domain
        if internship_type:
            sql += " AND LOWER(o.internship_type) = LOWER(:internship_type)"
            params["internship_type"] = internship_type
        if location:
            sql += " AND LOWER(o.location) LIKE LOWER(:location)"
            params["location"] = f"%{location}%"
        if paid is not None:
            sql += " AND o.is_paid = :paid"
            params["paid"] = paid
        if search:
            sql += " AND (LOWER(o.title) LIKE LOWER(:search) OR LOWER(o.description) LIKE LOWER(:search))"
            params["search"] = f"%{search}%"

        sql += NEWEST_FIRST
        return self.db.execute_raw_sql(sql, params)

    def find(self, offer_id: int) -> Optional[dict]:
        return self.db.fetch_one(
            OFFER_SELECT + APPLICATION_COUNT + OFFER_FROM + " WHERE o.id = :id", {"id": offer_id}
        )

    def get_active(self, offer_id: int) -> dict:
        """Public detail; offers of blocked companies are hidden like disabled ones."""
        offer = self.find(offer_id)
        if (not offer or offer["status"] != OfferStatus.active.value
                or offer["company_status"] != AccountStatus.active.value):
            raise NotFound("Offer not found")
        offer.pop("application_count")
        return offer

    def _get_managed(self, offer_id: int, user: dict) -> dict:
        offer = self.find(offer_id)
        if not offer:
            raise NotFound("Offer not found")
        ensure_owner_or_admin(user, offer["company_account_id"], "You can only manage your own offers")
        return offer

    def list_for_company(self, company_id: int) -> List[dict]:
        return self.db.execute_raw_sql(
            OFFER_SELECT + APPLICATION_COUNT + OFFER_FROM
            + " WHERE o.company_account_id = :company_id" + NEWEST_FIRST,
            {"company_id": company_id},
        )

    def list_all(self, status: Optional[OfferStatus] = None) -> List[dict]:
        sql = OFFER_SELECT + APPLICATION_COUNT + OFFER_FROM
        params = {}
        if status:
            sql += " WHERE o.status = :status"
            params["status"] = status.value
        return self.db.execute_raw_sql(sql + NEWEST_FIRST, params)

    def create(self, company_id: int, offer: OfferCreate) -> dict:
        params = offer.model_dump()
        if not params["is_paid"]:
            params["compensation_amount"] = None
        params["company_account_id"] = company_id

        with self.db.session() as session:
            offer_id = session.execute(
                _statement("""
                    INSERT INTO offers (company_account_id, title, description, domain, capacity,
                        location, internship_type, is_paid, compensation_amount,
                        start_date, end_date, status)
                    VALUES (:company_account_id, :title, :description, :domain, :capacity,
                        :location, :internship_type, :is_paid, :compensation_amount,
                        :start_date, :end_date, 'active')
                    RETURNING id
                """, params),
                params,
            ).scalar_one()

        logger.info("Company %s created offer %s", company_id, offer_id)
        return self.find(offer_id)

    def update(self, offer_id: int, user: dict, changes: OfferUpdate) -> dict:
        current = self._get_managed(offer_id, user)
        values = changes.model_dump(exclude_unset=True)

        for field in ("title", "description", "domain", "capacity", "is_paid"):
            if field in values and values[field] is None:
                raise ValidationError(f"{field} cannot be empty")

        start = values.get("start_date", current["start_date"])
        end = values.get("end_date", current["end_date"])
        if start and end and str(end) < str(start):
            raise ValidationError("end_date must not be before start_date")

        if values.get("is_paid") is False:
            values["compensation_amount"] = None
        if not values:
            return current

        assignments = ", ".join(f"{column} = :{column}" for column in values)
        params = {**values, "id": offer_id}
        with self.db.session() as session:
            session.execute(
                _statement(f"UPDATE offers SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = :id", params),
                params,
            )
        return self.find(offer_id)

    def set_status(self, offer_id: int, user: dict, status: OfferStatus) -> dict:
        self._get_managed(offer_id, user)
        with self.db.session() as session:
            session.execute(
                text("UPDATE offers SET status = :status, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                {"status": status.value, "id": offer_id},
            )
        logger.info("Offer %s set to %s by account %s", offer_id, status.value, user["user_id"])
        return self.find(offer_id)

    def delete(self, offer_id: int, user: dict) -> None:
        """Delete an offer and every application made to it."""
        self._get_managed(offer_id, user)
        with self.db.session() as session:
            session.execute(text("DELETE FROM applications WHERE offer_id = :id"), {"id": offer_id})
            session.execute(text("DELETE FROM offers WHERE id = :id"), {"id": offer_id})
        logger.info("Offer %s deleted by account %s", offer_id, user["user_id"])


def get_offer_service(request: Request) -> OfferService:
    return OfferService(request.app.state.db)
