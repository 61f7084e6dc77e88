"""
Account Service - registration, login and admin moderation of accounts.

A student or company account always comes with its profile row: both are
inserted in the same transaction at registration, and removed together
(with offers and applications) when an admin deletes the account.
"""

import logging
from typing import Dict, List, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from espacestage.core.auth import create_access_token, hash_password, verify_password
from espacestage.core.config import Settings
from espacestage.core.errors import (
    AccountBlocked, Conflict, Forbidden, InvalidCredentials, NotFound, ValidationError
)
from espacestage.db.postgres import Database
from espacestage.schemas.schemas import AccountStatus, RegisterRequest, UserRole

logger = logging.getLogger(__name__)

# Landing page per role after login
ROLE_REDIRECTS: Dict[UserRole, str] = {
    UserRole.student: "/etudiant/dashboard",
    UserRole.company: "/entreprise/dashboard",
    UserRole.admin: "/admin/dashboard",
}

ACCOUNT_COLUMNS = "id, email, role, status, created_at"


class AccountService:
    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    # ------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------

    def _issue_token(self, account: dict) -> str:
        return create_access_token(
            {"sub": str(account["id"]), "role": account["role"]},
            settings=self.settings,
        )

    def profile_display(self, account_id: int, role: UserRole) -> Optional[dict]:
        """Profile fields shown next to the account (navbar, dashboards)."""
        if role == UserRole.student:
            return self.db.fetch_one("""
                SELECT first_name, last_name, education_domain, education_level,
                       photo_url, cv_url
                FROM student_profiles WHERE account_id = :id
            """, {"id": account_id})
        if role == UserRole.company:
            return self.db.fetch_one("""
                SELECT company_name, sector, address, logo_url
                FROM company_profiles WHERE account_id = :id
            """, {"id": account_id})
        return None

    def register(self, req: RegisterRequest) -> dict:
        """
        Create an account and its profile row.

        Raises:
            Conflict: email already registered (unique constraint)
        """
        email = req.email.lower()
        with self.db.session() as session:
            try:
                account = session.execute(
                    text(f"""
                        INSERT INTO accounts (email, password_hash, role, status)
                        VALUES (:email, :password_hash, :role, 'active')
                        RETURNING {ACCOUNT_COLUMNS}
                    """),
                    {"email": email, "password_hash": hash_password(req.password), "role": req.role.value},
                ).mappings().one()
            except IntegrityError:
                raise Conflict("An account with this email already exists")

            account = dict(account)
            if req.role == UserRole.student:
                session.execute(
                    text("""
                        INSERT INTO student_profiles (account_id, first_name, last_name, education_domain)
                        VALUES (:id, :first_name, :last_name, :education_domain)
                    """),
                    {"id": account["id"], "first_name": req.first_name,
                     "last_name": req.last_name, "education_domain": req.education_domain},
                )
            else:
                session.execute(
                    text("""
                        INSERT INTO company_profiles (account_id, company_name, sector, address)
                        VALUES (:id, :company_name, :sector, :address)
                    """),
                    {"id": account["id"], "company_name": req.company_name,
                     "sector": req.sector, "address": req.address},
                )

        logger.info("Registered %s account %s", req.role.value, account["id"])
        return {
            "user": account,
            "profile": self.profile_display(account["id"], req.role),
            "token": self._issue_token(account),
            "redirect": ROLE_REDIRECTS[req.role],
        }

    def login(self, email: str, password: str, role: Optional[UserRole] = None) -> dict:
        """
        Check credentials and issue a token.

        Raises:
            InvalidCredentials: unknown email, wrong password or wrong role
            AccountBlocked: the account was blocked by an admin
        """
        account = self.db.fetch_one(
            f"SELECT {ACCOUNT_COLUMNS}, password_hash FROM accounts WHERE email = :email",
            {"email": email.lower()},
        )
        if not account or not verify_password(password, account.pop("password_hash")):
            raise InvalidCredentials()
        if role is not None and account["role"] != role.value:
            raise InvalidCredentials()
        if account["status"] == AccountStatus.blocked.value:
            raise AccountBlocked()

        account_role = UserRole(account["role"])
        return {
            "user": account,
            "profile": self.profile_display(account["id"], account_role),
            "token": self._issue_token(account),
            "redirect": ROLE_REDIRECTS[account_role],
        }

    def me(self, account_id: int) -> dict:
        account = self.db.fetch_one(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE id = :id", {"id": account_id}
        )
        if not account:
            raise NotFound("Account not found")
        return {"user": account, "profile": self.profile_display(account_id, UserRole(account["role"]))}

    def change_password(self, account_id: int, current_password: str, new_password: str) -> None:
        account = self.db.fetch_one(
            "SELECT password_hash FROM accounts WHERE id = :id", {"id": account_id}
        )
        if not account:
            raise NotFound("Account not found")
        if not verify_password(current_password, account["password_hash"]):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current one")

        with self.db.session() as session:
            session.execute(
                text("""
                    UPDATE accounts SET password_hash = :password_hash, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id
                """),
                {"password_hash": hash_password(new_password), "id": account_id},
            )

    # ------------------------------------------------------------
    # Admin moderation
    # ------------------------------------------------------------

    def list_students(self, status: Optional[AccountStatus] = None) -> List[dict]:
        sql = """
            SELECT a.id, a.email, a.status, a.created_at,
                   sp.first_name, sp.last_name, sp.education_domain, sp.education_level,
                   sp.specialization, sp.institution, sp.phone,
                   (SELECT COUNT(*) FROM applications ap
                    WHERE ap.student_account_id = a.id) AS application_count
            FROM accounts a
            LEFT JOIN student_profiles sp ON sp.account_id = a.id
            WHERE a.role = 'student'
        """
        params = {}
        if status:
            sql += " AND a.status = :status"
            params["status"] = status.value
        sql += " ORDER BY a.created_at DESC, a.id DESC"
        return self.db.execute_raw_sql(sql, params)

    def student_detail(self, account_id: int) -> dict:
        student = self.db.fetch_one("""
            SELECT a.id, a.email, a.status, a.created_at,
                   sp.first_name, sp.last_name, sp.education_domain, sp.education_level,
                   sp.specialization, sp.institution, sp.phone, sp.address, sp.bio,
                   sp.photo_url, sp.cv_url, sp.certificate_url,
                   COUNT(ap.id) AS application_count,
                   COALESCE(SUM(CASE WHEN ap.status = 'accepted' THEN 1 ELSE 0 END), 0) AS accepted_count,
                   COALESCE(SUM(CASE WHEN ap.status = 'pending' THEN 1 ELSE 0 END), 0) AS pending_count
            FROM accounts a
            LEFT JOIN student_profiles sp ON sp.account_id = a.id
            LEFT JOIN applications ap ON ap.student_account_id = a.id
            WHERE a.id = :id AND a.role = 'student'
            GROUP BY a.id, a.email, a.status, a.created_at,
                     sp.first_name, sp.last_name, sp.education_domain, sp.education_level,
                     sp.specialization, sp.institution, sp.phone, sp.address, sp.bio,
                     sp.photo_url, sp.cv_url, sp.certificate_url
        """, {"id": account_id})
        if not student:
            raise NotFound("Student not found")
        return student

    def list_companies(self, status: Optional[AccountStatus] = None) -> List[dict]:
        sql = """
            SELECT a.id, a.email, a.status, a.created_at,
                   cp.company_name, cp.sector, cp.address, cp.phone, cp.description, cp.logo_url,
                   (SELECT COUNT(*) FROM offers o
                    WHERE o.company_account_id = a.id) AS offer_count
            FROM accounts a
            LEFT JOIN company_profiles cp ON cp.account_id = a.id
            WHERE a.role = 'company'
        """
        params = {}
        if status:
            sql += " AND a.status = :status"
            params["status"] = status.value
        sql += " ORDER BY a.created_at DESC, a.id DESC"
        return self.db.execute_raw_sql(sql, params)

    def company_detail(self, account_id: int) -> dict:
        company = self.db.fetch_one("""
            SELECT a.id, a.email, a.status, a.created_at,
                   cp.company_name, cp.sector, cp.address, cp.phone, cp.description,
                   cp.employee_count, cp.logo_url,
                   (SELECT COUNT(*) FROM offers o
                    WHERE o.company_account_id = a.id) AS offer_count,
                   (SELECT COUNT(*) FROM offers o
                    WHERE o.company_account_id = a.id AND o.status = 'active') AS active_offer_count,
                   (SELECT COUNT(*) FROM applications ap JOIN offers o ON o.id = ap.offer_id
                    WHERE o.company_account_id = a.id) AS applications_received
            FROM accounts a
            LEFT JOIN company_profiles cp ON cp.account_id = a.id
            WHERE a.id = :id AND a.role = 'company'
        """, {"id": account_id})
        if not company:
            raise NotFound("Company not found")
        return company

    def _get_moderatable(self, account_id: int, action: str) -> dict:
        account = self.db.fetch_one(
            "SELECT id, email, role, status FROM accounts WHERE id = :id", {"id": account_id}
        )
        if not account:
            raise NotFound("User not found")
        if account["role"] == UserRole.admin.value:
            raise Forbidden(f"Administrator accounts cannot be {action}")
        return account

    def set_status(self, account_id: int, status: AccountStatus) -> dict:
        account = self._get_moderatable(account_id, "blocked" if status == AccountStatus.blocked else "modified")
        with self.db.session() as session:
            session.execute(
                text("UPDATE accounts SET status = :status, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                {"status": status.value, "id": account_id},
            )
        logger.info("Account %s (%s) set to %s", account_id, account["role"], status.value)
        return {"id": account["id"], "email": account["email"], "status": status.value}

    def delete_account(self, account_id: int) -> None:
        """Delete an account with its profile, offers and applications, atomically."""
        account = self._get_moderatable(account_id, "deleted")
        with self.db.session() as session:
            session.execute(
                text("""
                    DELETE FROM applications
                    WHERE student_account_id = :id
                       OR offer_id IN (SELECT id FROM offers WHERE company_account_id = :id)
                """),
                {"id": account_id},
            )
            session.execute(text("DELETE FROM offers WHERE company_account_id = :id"), {"id": account_id})
            session.execute(text("DELETE FROM student_profiles WHERE account_id = :id"), {"id": account_id})
            session.execute(text("DELETE FROM company_profiles WHERE account_id = :id"), {"id": account_id})
            session.execute(text("DELETE FROM accounts WHERE id = :id"), {"id": account_id})
        logger.info("Deleted %s account %s (%s)", account["role"], account_id, account["email"])


def get_account_service(request: Request) -> AccountService:
    return AccountService(request.app.state.db, request.app.state.settings)
