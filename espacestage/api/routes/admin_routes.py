"""
Admin Routes (admin role only)

GET /admin/stats - Dashboard statistics
GET /admin/students, /admin/students/{id} - Student accounts
GET /admin/companies, /admin/companies/{id} - Company accounts
GET /admin/offres - All offers, any status
PUT /admin/users/{id}/status - Block / unblock an account
DELETE /admin/users/{id} - Delete an account with everything it owns
PUT /admin/offres/{id}/status - Activate / disable an offer
DELETE /admin/offres/{id} - Delete an offer and its applications
GET /admin/candidatures - All applications with filters
DELETE /admin/candidatures/{id} - Delete an application
GET /admin/rapports - Period report
GET /admin/rapports/export - Period report as CSV or PDF
GET /admin/tableau-croise - Students per company and education level
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from espacestage.core.auth import get_current_admin
from espacestage.schemas.schemas import (
    AccountStatus, AccountStatusResponse, AccountStatusUpdate, AdminApplicationResponse,
    AdminCompanyDetail, AdminCompanyResponse, AdminStudentDetail, AdminStudentResponse,
    ApplicationStatus, Envelope, ExportFormat, ListEnvelope, MessageResponse, OfferResponse,
    OfferStatus, OfferStatusUpdate, PivotTable, ReportPeriod, ReportResponse, StatsResponse
)
from espacestage.services.account_service import AccountService, get_account_service
from espacestage.services.application_service import ApplicationService, get_application_service
from espacestage.services.offer_service import OfferService, get_offer_service
from espacestage.services.report_service import ReportService, get_report_service

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================
# DASHBOARD & REPORTS
# ============================================================

@router.get("/stats", response_model=Envelope[StatsResponse])
def stats(admin: dict = Depends(get_current_admin), reports: ReportService = Depends(get_report_service)):
    return {"success": True, "data": reports.stats()}


@router.get("/rapports", response_model=Envelope[ReportResponse])
def report(period: ReportPeriod = Query(ReportPeriod.six_months),
           admin: dict = Depends(get_current_admin),
           reports: ReportService = Depends(get_report_service)):
    """Totals, monthly evolution over the period, domains, top companies and acceptance rate."""
    return {"success": True, "data": reports.report(period)}


@router.get("/rapports/export")
def export_report(period: ReportPeriod = Query(ReportPeriod.six_months),
                  format: ExportFormat = Query(ExportFormat.csv),
                  admin: dict = Depends(get_current_admin),
                  reports: ReportService = Depends(get_report_service)):
    content, media_type, filename = reports.export(period, format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/tableau-croise", response_model=Envelope[PivotTable])
def pivot_table(admin: dict = Depends(get_current_admin), reports: ReportService = Depends(get_report_service)):
    """Distinct students who applied in the last 12 months, per company and education level."""
    return {"success": True, "data": reports.pivot()}


# ============================================================
# ACCOUNTS
# ============================================================

@router.get("/students", response_model=ListEnvelope[AdminStudentResponse])
def list_students(status: Optional[AccountStatus] = Query(None), admin: dict = Depends(get_current_admin),
                  accounts: AccountService = Depends(get_account_service)):
    results = accounts.list_students(status)
    return {"success": True, "count": len(results), "data": results}


@router.get("/students/{account_id}", response_model=Envelope[AdminStudentDetail])
def student_detail(account_id: int, admin: dict = Depends(get_current_admin),
                   accounts: AccountService = Depends(get_account_service)):
    return {"success": True, "data": accounts.student_detail(account_id)}


@router.get("/companies", response_model=ListEnvelope[AdminCompanyResponse])
def list_companies(status: Optional[AccountStatus] = Query(None), admin: dict = Depends(get_current_admin),
                   accounts: AccountService = Depends(get_account_service)):
    results = accounts.list_companies(status)
    return {"success": True, "count": len(results), "data": results}


@router.get("/companies/{account_id}", response_model=Envelope[AdminCompanyDetail])
def company_detail(account_id: int, admin: dict = Depends(get_current_admin),
                   accounts: AccountService = Depends(get_account_service)):
    return {"success": True, "data": accounts.company_detail(account_id)}


@router.put("/users/{account_id}/status", response_model=Envelope[AccountStatusResponse])
def set_user_status(account_id: int, data: AccountStatusUpdate, admin: dict = Depends(get_current_admin),
                    accounts: AccountService = Depends(get_account_service)):
    """Block or unblock a student/company account. A blocked account cannot log in."""
    result = accounts.set_status(account_id, data.status)
    return {"success": True, "message": f"Account {data.status.value}", "data": result}


@router.delete("/users/{account_id}", response_model=MessageResponse)
def delete_user(account_id: int, admin: dict = Depends(get_current_admin),
                accounts: AccountService = Depends(get_account_service)):
    """Delete an account with its profile, offers and applications."""
    accounts.delete_account(account_id)
    return MessageResponse(message="User deleted successfully")


# ============================================================
# OFFERS
# ============================================================

@router.get("/offres", response_model=ListEnvelope[OfferResponse])
def list_offers(status: Optional[OfferStatus] = Query(None), admin: dict = Depends(get_current_admin),
                offers: OfferService = Depends(get_offer_service)):
    results = offers.list_all(status)
    return {"success": True, "count": len(results), "data": results}


@router.put("/offres/{offer_id}/status", response_model=Envelope[OfferResponse])
def set_offer_status(offer_id: int, data: OfferStatusUpdate, admin: dict = Depends(get_current_admin),
                     offers: OfferService = Depends(get_offer_service)):
    updated = offers.set_status(offer_id, admin, data.status)
    return {"success": True, "message": f"Offer {data.status.value}", "data": updated}


@router.delete("/offres/{offer_id}", response_model=MessageResponse)
def delete_offer(offer_id: int, admin: dict = Depends(get_current_admin),
                 offers: OfferService = Depends(get_offer_service)):
    offers.delete(offer_id, admin)
    return MessageResponse(message="Offer deleted successfully")


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/candidatures", response_model=ListEnvelope[AdminApplicationResponse])
def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    student_id: Optional[int] = Query(None),
    company_id: Optional[int] = Query(None),
    offer_id: Optional[int] = Query(None),
    admin: dict = Depends(get_current_admin),
    applications: ApplicationService = Depends(get_application_service),
):
    results = applications.list_all(status, student_id, company_id, offer_id)
    return {"success": True, "count": len(results), "data": results}


@router.delete("/candidatures/{application_id}", response_model=MessageResponse)
def delete_application(application_id: int, admin: dict = Depends(get_current_admin),
                       applications: ApplicationService = Depends(get_application_service)):
    applications.admin_delete(application_id)
    return MessageResponse(message="Application deleted successfully")
