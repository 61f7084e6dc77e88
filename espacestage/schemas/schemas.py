"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Every response is wrapped in the uniform envelope {success, data?, message?}.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    company = "company"
    admin = "admin"


class AccountStatus(str, Enum):
    active = "active"
    blocked = "blocked"


class OfferStatus(str, Enum):
    active = "active"
    disabled = "disabled"


class ApplicationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class EducationLevel(str, Enum):
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"
    M1 = "M1"
    M2 = "M2"


class ReportPeriod(str, Enum):
    one_month = "1m"
    three_months = "3m"
    six_months = "6m"
    one_year = "1y"


class ExportFormat(str, Enum):
    csv = "csv"
    pdf = "pdf"


# ============================================================
# ENVELOPES
# ============================================================

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ListEnvelope(BaseModel, Generic[T]):
    success: bool = True
    count: int
    data: List[T]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CountResponse(BaseModel):
    success: bool = True
    count: int


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole
    # Optional profile seed fields
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    education_domain: Optional[str] = None
    company_name: Optional[str] = None
    sector: Optional[str] = None
    address: Optional[str] = None

    @field_validator("role")
    @classmethod
    def no_admin_signup(cls, value: UserRole) -> UserRole:
        if value == UserRole.admin:
            raise ValueError("role must be 'student' or 'company'")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: Optional[UserRole] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class AccountResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    status: AccountStatus
    created_at: datetime


class AuthData(BaseModel):
    user: AccountResponse
    profile: Optional[dict] = None
    token: str
    token_type: str = "bearer"
    redirect: str


class MeData(BaseModel):
    user: AccountResponse
    profile: Optional[dict] = None


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentProfileRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    education_domain: Optional[str] = None
    education_level: Optional[EducationLevel] = None
    specialization: Optional[str] = None
    institution: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    bio: Optional[str] = None
    # URL or data: URL
    photo_url: Optional[str] = None
    cv_url: Optional[str] = None
    certificate_url: Optional[str] = None


class StudentProfileResponse(BaseModel):
    account_id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    education_domain: Optional[str] = None
    education_level: Optional[EducationLevel] = None
    specialization: Optional[str] = None
    institution: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    cv_url: Optional[str] = None
    certificate_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyProfileRequest(BaseModel):
    company_name: Optional[str] = Field(None, max_length=200)
    sector: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    employee_count: Optional[int] = Field(None, ge=0)
    logo_url: Optional[str] = None


class CompanyProfileResponse(BaseModel):
    account_id: int
    email: str
    company_name: Optional[str] = None
    sector: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    employee_count: Optional[int] = None
    logo_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class UploadedFile(BaseModel):
    file_id: str
    url: str


class ProfileCheckResponse(BaseModel):
    success: bool = True
    has_profile: bool
    is_complete: bool = False


# ============================================================
# OFFER SCHEMAS
# ============================================================

class OfferCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    domain: str = Field(..., min_length=1, max_length=150)
    capacity: int = Field(1, ge=1)
    location: Optional[str] = None
    internship_type: Optional[str] = None
    is_paid: bool = False
    compensation_amount: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class OfferUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    domain: Optional[str] = Field(None, min_length=1, max_length=150)
    capacity: Optional[int] = Field(None, ge=1)
    location: Optional[str] = None
    internship_type: Optional[str] = None
    is_paid: Optional[bool] = None
    compensation_amount: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class OfferStatusUpdate(BaseModel):
    status: OfferStatus


class OfferResponse(BaseModel):
    id: int
    company_account_id: int
    title: str
    description: str
    domain: str
    capacity: int
    location: Optional[str] = None
    internship_type: Optional[str] = None
    is_paid: bool
    compensation_amount: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: OfferStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    # Denormalized company display fields
    company_name: Optional[str] = None
    sector: Optional[str] = None
    logo_url: Optional[str] = None
    company_email: Optional[str] = None
    application_count: Optional[int] = None


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    offer_id: int
    message: Optional[str] = Field(None, max_length=5000)


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicationResponse(BaseModel):
    id: int
    offer_id: int
    student_account_id: int
    status: ApplicationStatus
    message: Optional[str] = None
    submitted_at: datetime
    updated_at: Optional[datetime] = None


class StudentApplicationResponse(ApplicationResponse):
    offer_title: str
    offer_domain: Optional[str] = None
    offer_location: Optional[str] = None
    internship_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    company_account_id: int
    company_name: Optional[str] = None
    logo_url: Optional[str] = None
    company_email: Optional[str] = None


class CompanyApplicationResponse(ApplicationResponse):
    offer_title: str
    offer_domain: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    student_email: str
    education_domain: Optional[str] = None
    education_level: Optional[str] = None
    specialization: Optional[str] = None
    institution: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    cv_url: Optional[str] = None
    certificate_url: Optional[str] = None


class AdminApplicationResponse(ApplicationResponse):
    offer_title: str
    offer_domain: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    student_email: str
    company_account_id: int
    company_name: Optional[str] = None
    company_email: str


class AppliedCheckResponse(BaseModel):
    success: bool = True
    has_applied: bool
    data: Optional[ApplicationResponse] = None


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class AccountStatusUpdate(BaseModel):
    status: AccountStatus


class AdminStudentResponse(BaseModel):
    id: int
    email: str
    status: AccountStatus
    created_at: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    education_domain: Optional[str] = None
    education_level: Optional[str] = None
    specialization: Optional[str] = None
    institution: Optional[str] = None
    phone: Optional[str] = None
    application_count: int = 0


class AdminStudentDetail(AdminStudentResponse):
    address: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    cv_url: Optional[str] = None
    certificate_url: Optional[str] = None
    accepted_count: int = 0
    pending_count: int = 0


class AdminCompanyResponse(BaseModel):
    id: int
    email: str
    status: AccountStatus
    created_at: datetime
    company_name: Optional[str] = None
    sector: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    offer_count: int = 0


class AdminCompanyDetail(AdminCompanyResponse):
    employee_count: Optional[int] = None
    active_offer_count: int = 0
    applications_received: int = 0


class AccountStatusResponse(BaseModel):
    id: int
    email: str
    status: AccountStatus


# ============================================================
# REPORTING SCHEMAS
# ============================================================

class Totals(BaseModel):
    students: int
    companies: int
    offers: int
    applications: int


class StatusCount(BaseModel):
    status: ApplicationStatus
    count: int


class MonthlyPoint(BaseModel):
    month: str  # YYYY-MM
    students: int = 0
    companies: int = 0
    offers: int = 0
    applications: int = 0


class ActivityItem(BaseModel):
    type: str
    name: str
    details: Optional[str] = None
    time: datetime


class StatsResponse(BaseModel):
    totals: Totals
    applications_by_status: List[StatusCount]
    monthly_growth: List[MonthlyPoint]
    recent_activity: List[ActivityItem]


class DomainBreakdown(BaseModel):
    domain: str
    students: int
    offers: int


class TopCompany(BaseModel):
    company_name: Optional[str] = None
    offer_count: int
    application_count: int


class ReportResponse(BaseModel):
    period: ReportPeriod
    generated_at: datetime
    totals: Totals
    monthly_evolution: List[MonthlyPoint]
    by_domain: List[DomainBreakdown]
    applications_by_status: List[StatusCount]
    top_companies: List[TopCompany]
    acceptance_rate: float


class PivotRow(BaseModel):
    company_name: str
    counts: Dict[str, int]
    total: int


class PivotTable(BaseModel):
    levels: List[str]
    rows: List[PivotRow]
    column_totals: Dict[str, int]
    grand_total: int
