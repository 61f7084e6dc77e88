"""
Profile Service - student and company profiles.

One profile row per account, keyed by account_id. POST is an upsert
(create or update), PUT only updates an existing row. File fields are
opaque URLs; a data: URL is first stored through the file store.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fastapi import Request
from sqlalchemy import text

from espacestage.core.errors import NotFound, ValidationError
from espacestage.db.mongodb import FileStore
from espacestage.db.postgres import Database
from espacestage.utils.file_upload import (
    COMPANY_FILE_FOLDERS, STUDENT_FILE_FOLDERS, resolve_file_fields
)


@dataclass(frozen=True)
class ProfileKind:
    table: str
    label: str
    fields: Tuple[str, ...]
    required: Tuple[str, ...]
    file_folders: Dict[str, str]


STUDENT_PROFILE = ProfileKind(
    table="student_profiles",
    label="Student",
    fields=(
        "first_name", "last_name", "education_domain", "education_level", "specialization",
        "institution", "phone", "address", "bio", "photo_url", "cv_url", "certificate_url",
    ),
    required=("first_name", "last_name"),
    file_folders=STUDENT_FILE_FOLDERS,
)

COMPANY_PROFILE = ProfileKind(
    table="company_profiles",
    label="Company",
    fields=("company_name", "sector", "address", "phone", "description", "employee_count", "logo_url"),
    required=("company_name", "sector"),
    file_folders=COMPANY_FILE_FOLDERS,
)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ProfileService:
    def __init__(self, db: Database, file_store: FileStore, upload_max_bytes: int):
        self.db = db
        self.file_store = file_store
        self.upload_max_bytes = upload_max_bytes

    def find(self, kind: ProfileKind, account_id: int) -> Optional[dict]:
        return self.db.fetch_one(f"""
            SELECT p.*, a.email
            FROM {kind.table} p JOIN accounts a ON a.id = p.account_id
            WHERE p.account_id = :id
        """, {"id": account_id})

    def get(self, kind: ProfileKind, account_id: int) -> dict:
        profile = self.find(kind, account_id)
        if not profile:
            raise NotFound(f"{kind.label} profile not found")
        return profile

    def _prepare(self, kind: ProfileKind, values: dict) -> dict:
        values = {k: v for k, v in values.items() if k in kind.fields}
        return resolve_file_fields(values, kind.file_folders, self.file_store, self.upload_max_bytes)

    def upsert(self, kind: ProfileKind, account_id: int, values: dict) -> Tuple[dict, bool]:
        """
        Create the profile or update the submitted fields of the existing one.

        Returns:
            Tuple of (profile, created)
        """
        missing = [field for field in kind.required if _blank(values.get(field))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        values = self._prepare(kind, values)
        existing = self.find(kind, account_id)
        if existing:
            self._update_row(kind, account_id, values)
            return self.get(kind, account_id), False

        columns = ["account_id", *values]
        with self.db.session() as session:
            session.execute(
                text(f"""
                    INSERT INTO {kind.table} ({', '.join(columns)})
                    VALUES ({', '.join(':' + c for c in columns)})
                """),
                {"account_id": account_id, **values},
            )
        return self.get(kind, account_id), True

    def update(self, kind: ProfileKind, account_id: int, values: dict) -> dict:
        """Partial update of the provided fields; required fields may not be blanked."""
        if not self.find(kind, account_id):
            raise NotFound(f"{kind.label} profile not found")

        blanked = [field for field in kind.required if field in values and _blank(values[field])]
        if blanked:
            raise ValidationError(f"Fields cannot be empty: {', '.join(blanked)}", fields=blanked)

        self._update_row(kind, account_id, self._prepare(kind, values))
        return self.get(kind, account_id)

    def _update_row(self, kind: ProfileKind, account_id: int, values: dict) -> None:
        if not values:
            return
        assignments = ", ".join(f"{column} = :{column}" for column in values)
        with self.db.session() as session:
            session.execute(
                text(f"""
                    UPDATE {kind.table} SET {assignments}, updated_at = CURRENT_TIMESTAMP
                    WHERE account_id = :account_id
                """),
                {"account_id": account_id, **values},
            )

    def check(self, kind: ProfileKind, account_id: int) -> dict:
        profile = self.find(kind, account_id)
        if not profile:
            return {"has_profile": False, "is_complete": False}
        return {
            "has_profile": True,
            "is_complete": all(not _blank(profile.get(field)) for field in kind.required),
        }


def get_profile_service(request: Request) -> ProfileService:
    settings = request.app.state.settings
    return ProfileService(
        request.app.state.db,
        request.app.state.file_store,
        settings.upload_max_size_mb * 1024 * 1024,
    )
