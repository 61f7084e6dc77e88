"""
Relational schema (SQLAlchemy Core).

accounts            - credentials, role, moderation status
student_profiles    - 1:1 extension of a student account
company_profiles    - 1:1 extension of a company account
offers              - internship postings owned by a company account
applications        - student x offer, unique per pair

Queries elsewhere are written as raw SQL against these tables; the
Table objects are the DDL source and are used where typed binding matters.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    false,
    func,
)

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True)),
    CheckConstraint("role IN ('student', 'company', 'admin')", name="ck_accounts_role"),
    CheckConstraint("status IN ('active', 'blocked')", name="ck_accounts_status"),
)

student_profiles = Table(
    "student_profiles",
    metadata,
    Column("account_id", Integer, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("education_domain", String(150)),
    Column("education_level", String(2)),
    Column("specialization", String(150)),
    Column("institution", String(200)),
    Column("phone", String(30)),
    Column("address", Text),
    Column("bio", Text),
    Column("photo_url", Text),
    Column("cv_url", Text),
    Column("certificate_url", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True)),
    CheckConstraint(
        "education_level IS NULL OR education_level IN ('L1', 'L2', 'L3', 'M1', 'M2')",
        name="ck_student_profiles_level",
    ),
)

company_profiles = Table(
    "company_profiles",
    metadata,
    Column("account_id", Integer, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True),
    Column("company_name", String(200)),
    Column("sector", String(150)),
    Column("address", Text),
    Column("phone", String(30)),
    Column("description", Text),
    Column("employee_count", Integer),
    Column("logo_url", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True)),
)

offers = Table(
    "offers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_account_id", Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False),
    Column("domain", String(150), nullable=False),
    Column("capacity", Integer, nullable=False, server_default="1"),
    Column("location", String(200)),
    Column("internship_type", String(50)),
    Column("is_paid", Boolean, nullable=False, server_default=false()),
    Column("compensation_amount", Numeric(10, 2)),
    Column("start_date", Date),
    Column("end_date", Date),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True)),
    CheckConstraint("capacity >= 1", name="ck_offers_capacity"),
    CheckConstraint("status IN ('active', 'disabled')", name="ck_offers_status"),
)

applications = Table(
    "applications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("offer_id", Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("student_account_id", Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("message", Text),
    Column("submitted_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("offer_id", "student_account_id", name="uq_applications_offer_student"),
    CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name="ck_applications_status"),
)
