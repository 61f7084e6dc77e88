"""
Application Service - the candidature lifecycle.

    pending --(owning company)--> accepted
    pending --(owning company)--> rejected

accepted/rejected are terminal; the only way out is deletion, by the
student (withdraw or clear from history) or by an admin.

Uniqueness of (offer, student) is left to the database constraint, so two
concurrent submissions cannot both succeed. Emails go out after the write
has committed; a failed email never undoes the write.
"""

import logging
from typing import List, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from espacestage.core.errors import Conflict, Forbidden, NotFound, PreconditionFailed, ValidationError
from espacestage.db.postgres import Database
from espacestage.schemas.schemas import AccountStatus, ApplicationStatus, OfferStatus
from espacestage.services.notification_service import Notifier, dispatch_safely

logger = logging.getLogger(__name__)

APPLICATION_COLUMNS = "ap.id, ap.offer_id, ap.student_account_id, ap.status, ap.message, ap.submitted_at, ap.updated_at"
NEWEST_FIRST = " ORDER BY ap.submitted_at DESC, ap.id DESC"


def _full_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return " ".join(part for part in (first_name, last_name) if part)


class ApplicationService:
    def __init__(self, db: Database, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    def submit(self, student_id: int, offer_id: int, message: Optional[str] = None) -> dict:
        """
        Apply to an offer.

        Raises:
            PreconditionFailed: no CV on the profile (missing_cv) or no name (incomplete_profile)
            NotFound: offer does not exist
            ValidationError: offer is not active
            Conflict: already applied to this offer
        """
        student = self.db.fetch_one("""
            SELECT a.email, sp.first_name, sp.last_name, sp.cv_url
            FROM accounts a LEFT JOIN student_profiles sp ON sp.account_id = a.id
            WHERE a.id = :id
        """, {"id": student_id})
        if not student or not student["cv_url"]:
            raise PreconditionFailed("You must upload your CV before applying to an offer", missing_cv=True)
        if not student["first_name"] or not student["last_name"]:
            raise PreconditionFailed(
                "Complete your profile (first and last name) before applying", incomplete_profile=True
            )

        offer = self.db.fetch_one("""
            SELECT o.id, o.title, o.status, cp.company_name, a.email AS company_email, a.status AS company_status
            FROM offers o
            JOIN accounts a ON a.id = o.company_account_id
            LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
            WHERE o.id = :id
        """, {"id": offer_id})
        if not offer:
            raise NotFound("Offer not found")
        if offer["status"] != OfferStatus.active.value or offer["company_status"] != AccountStatus.active.value:
            raise ValidationError("This offer is no longer accepting applications")

        message = message.strip() if message and message.strip() else None
        with self.db.session() as session:
            try:
                application = session.execute(
                    text("""
                        INSERT INTO applications (offer_id, student_account_id, status, message)
                        VALUES (:offer_id, :student_id, 'pending', :message)
                        RETURNING id, offer_id, student_account_id, status, message, submitted_at, updated_at
                    """),
                    {"offer_id": offer_id, "student_id": student_id, "message": message},
                ).mappings().one()
            except IntegrityError:
                raise Conflict("You have already applied to this offer")
            application = dict(application)

        logger.info("Student %s applied to offer %s", student_id, offer_id)
        dispatch_safely(
            self.notifier.application_received,
            company_email=offer["company_email"],
            company_name=offer["company_name"],
            student_name=_full_name(student["first_name"], student["last_name"]),
            student_email=student["email"],
            offer_title=offer["title"],
            message=message,
        )
        return application

    def find(self, application_id: int) -> Optional[dict]:
        return self.db.fetch_one(f"""
            SELECT {APPLICATION_COLUMNS}, o.company_account_id, o.title AS offer_title,
                   sp.first_name, sp.last_name, sa.email AS student_email, cp.company_name
            FROM applications ap
            JOIN offers o ON o.id = ap.offer_id
            JOIN accounts sa ON sa.id = ap.student_account_id
            LEFT JOIN student_profiles sp ON sp.account_id = ap.student_account_id
            LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
            WHERE ap.id = :id
        """, {"id": application_id})

    def _get(self, application_id: int) -> dict:
        application = self.find(application_id)
        if not application:
            raise NotFound("Application not found")
        return application

    # ------------------------------------------------------------
    # Listings (scoped to the caller)
    # ------------------------------------------------------------

    def list_for_student(self, student_id: int) -> List[dict]:
        return self.db.execute_raw_sql(f"""
            SELECT {APPLICATION_COLUMNS},
                   o.title AS offer_title, o.domain AS offer_domain, o.location AS offer_location,
                   o.internship_type, o.start_date, o.end_date, o.company_account_id,
                   cp.company_name, cp.logo_url, ca.email AS company_email
            FROM applications ap
            JOIN offers o ON o.id = ap.offer_id
            JOIN accounts ca ON ca.id = o.company_account_id
            LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
            WHERE ap.student_account_id = :student_id
        """ + NEWEST_FIRST, {"student_id": student_id})

    def list_for_company(self, company_id: int, offer_id: Optional[int] = None,
                         status: Optional[ApplicationStatus] = None) -> List[dict]:
        sql = f"""
            SELECT {APPLICATION_COLUMNS},
                   o.title AS offer_title, o.domain AS offer_domain,
                   sp.first_name, sp.last_name, sa.email AS student_email,
                   sp.education_domain, sp.education_level, sp.specialization, sp.institution,
                   sp.phone, sp.bio, sp.photo_url, sp.cv_url, sp.certificate_url
            FROM applications ap
            JOIN offers o ON o.id = ap.offer_id
            JOIN accounts sa ON sa.id = ap.student_account_id
            LEFT JOIN student_profiles sp ON sp.account_id = ap.student_account_id
            WHERE o.company_account_id = :company_id
        """
        params = {"company_id": company_id}
        if offer_id is not None:
            sql += " AND ap.offer_id = :offer_id"
            params["offer_id"] = offer_id
        if status:
            sql += " AND ap.status = :status"
            params["status"] = status.value
        return self.db.execute_raw_sql(sql + NEWEST_FIRST, params)

    def list_all(self, status: Optional[ApplicationStatus] = None, student_id: Optional[int] = None,
                 company_id: Optional[int] = None, offer_id: Optional[int] = None) -> List[dict]:
        sql = f"""
            SELECT {APPLICATION_COLUMNS},
                   o.title AS offer_title, o.domain AS offer_domain,
                   sp.first_name, sp.last_name, sa.email AS student_email,
                   o.company_account_id, cp.company_name, ca.email AS company_email
            FROM applications ap
            JOIN offers o ON o.id = ap.offer_id
            JOIN accounts sa ON sa.id = ap.student_account_id
            JOIN accounts ca ON ca.id = o.company_account_id
            LEFT JOIN student_profiles sp ON sp.account_id = ap.student_account_id
            LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
            WHERE 1 = 1
        """
        params = {}
        if status:
            sql += " AND ap.status = :status"
            params["status"] = status.value
        if student_id is not None:
            sql += " AND ap.student_account_id = :student_id"
            params["student_id"] = student_id
        if company_id is not None:
            sql += " AND o.company_account_id = :company_id"
            params["company_id"] = company_id
        if offer_id is not None:
            sql += " AND ap.offer_id = :offer_id"
            params["offer_id"] = offer_id
        return self.db.execute_raw_sql(sql + NEWEST_FIRST, params)

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------

    def transition(self, application_id: int, company_id: int, new_status: ApplicationStatus) -> dict:
        """
        Accept or reject a pending application on one of the company's offers.

        Raises:
            ValidationError: target is not accepted/rejected, or the application is no longer pending
            NotFound: application does not exist
            Forbidden: the offer belongs to another company
        """
        if new_status == ApplicationStatus.pending:
            raise ValidationError("Status must be 'accepted' or 'rejected'")

        application = self._get(application_id)
        if application["company_account_id"] != company_id:
            raise Forbidden("You can only review applications to your own offers")
        if application["status"] != ApplicationStatus.pending.value:
            raise ValidationError(f"Application has already been {application['status']}")

        with self.db.session() as session:
            updated = session.execute(
                text("""
                    UPDATE applications SET status = :status, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND status = 'pending'
                """),
                {"status": new_status.value, "id": application_id},
            ).rowcount
        if not updated:
            # Decided concurrently by another request
            raise ValidationError("Application is no longer pending")

        logger.info("Application %s %s by company %s", application_id, new_status.value, company_id)
        dispatch_safely(
            self.notifier.application_status_changed,
            student_email=application["student_email"],
            student_name=_full_name(application["first_name"], application["last_name"]),
            offer_title=application["offer_title"],
            company_name=application["company_name"],
            status=new_status.value,
        )
        return self._get(application_id)

    def withdraw(self, application_id: int, student_id: int) -> None:
        """Delete one of the student's applications, whatever its status."""
        application = self._get(application_id)
        if application["student_account_id"] != student_id:
            raise Forbidden("You can only delete your own applications")
        self._delete(application_id)
        logger.info("Application %s (%s) deleted by student %s", application_id, application["status"], student_id)

    def admin_delete(self, application_id: int) -> None:
        self._get(application_id)
        self._delete(application_id)
        logger.info("Application %s deleted by admin", application_id)

    def _delete(self, application_id: int) -> None:
        with self.db.session() as session:
            session.execute(text("DELETE FROM applications WHERE id = :id"), {"id": application_id})

    # ------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------

    def find_for_offer(self, student_id: int, offer_id: int) -> Optional[dict]:
        return self.db.fetch_one(f"""
            SELECT {APPLICATION_COLUMNS} FROM applications ap
            WHERE ap.student_account_id = :student_id AND ap.offer_id = :offer_id
        """, {"student_id": student_id, "offer_id": offer_id})

    def count_new_responses(self, student_id: int) -> int:
        row = self.db.fetch_one("""
            SELECT COUNT(*) AS total FROM applications
            WHERE student_account_id = :id AND status IN ('accepted', 'rejected')
        """, {"id": student_id})
        return int(row["total"])

    def count_pending(self, company_id: int) -> int:
        row = self.db.fetch_one("""
            SELECT COUNT(*) AS total
            FROM applications ap JOIN offers o ON o.id = ap.offer_id
            WHERE o.company_account_id = :id AND ap.status = 'pending'
        """, {"id": company_id})
        return int(row["total"])


def get_application_service(request: Request) -> ApplicationService:
    return ApplicationService(request.app.state.db, request.app.state.notifier)
