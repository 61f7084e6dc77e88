"""
Application (candidature) Routes

POST /candidatures - Apply to an offer (student only)
GET /candidatures/student - Own applications (student only)
GET /candidatures/student/new-responses - Count of decided applications (student only)
GET /candidatures/offre/{offer_id} - Whether the student applied to an offer
GET /candidatures/company - Applications to own offers (company only)
GET /candidatures/company/pending-count - Pending applications to own offers (company only)
PUT /candidatures/{application_id}/status - Accept or reject (owning company only)
DELETE /candidatures/{application_id} - Withdraw / clear from history (owning student only)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from espacestage.core.auth import get_current_company, get_current_student
from espacestage.schemas.schemas import (
    ApplicationCreate, ApplicationResponse, ApplicationStatus, ApplicationStatusUpdate,
    AppliedCheckResponse, CompanyApplicationResponse, CountResponse, Envelope, ListEnvelope,
    MessageResponse, StudentApplicationResponse
)
from espacestage.services.application_service import ApplicationService, get_application_service

router = APIRouter(prefix="/candidatures", tags=["Applications"])


@router.post("", response_model=Envelope[ApplicationResponse], status_code=201)
def apply(data: ApplicationCreate, student: dict = Depends(get_current_student),
          applications: ApplicationService = Depends(get_application_service)):
    """
    Apply to an active offer.

    Requires a CV and first/last name on the profile. One application per offer.
    """
    application = applications.submit(student["user_id"], data.offer_id, data.message)
    return {"success": True, "message": "Application sent successfully", "data": application}


@router.get("/student", response_model=ListEnvelope[StudentApplicationResponse])
def my_applications(student: dict = Depends(get_current_student),
                    applications: ApplicationService = Depends(get_application_service)):
    results = applications.list_for_student(student["user_id"])
    return {"success": True, "count": len(results), "data": results}


@router.get("/student/new-responses", response_model=CountResponse)
def new_responses(student: dict = Depends(get_current_student),
                  applications: ApplicationService = Depends(get_application_service)):
    return CountResponse(count=applications.count_new_responses(student["user_id"]))


@router.get("/offre/{offer_id}", response_model=AppliedCheckResponse)
def has_applied(offer_id: int, student: dict = Depends(get_current_student),
                applications: ApplicationService = Depends(get_application_service)):
    application = applications.find_for_offer(student["user_id"], offer_id)
    return {"success": True, "has_applied": application is not None, "data": application}


@router.get("/company", response_model=ListEnvelope[CompanyApplicationResponse])
def received_applications(
    offer_id: Optional[int] = Query(None),
    status: Optional[ApplicationStatus] = Query(None),
    company: dict = Depends(get_current_company),
    applications: ApplicationService = Depends(get_application_service),
):
    """Applications to the company's own offers, with the applicant's profile."""
    results = applications.list_for_company(company["user_id"], offer_id, status)
    return {"success": True, "count": len(results), "data": results}


@router.get("/company/pending-count", response_model=CountResponse)
def pending_count(company: dict = Depends(get_current_company),
                  applications: ApplicationService = Depends(get_application_service)):
    return CountResponse(count=applications.count_pending(company["user_id"]))


@router.put("/{application_id}/status", response_model=Envelope[ApplicationResponse])
def set_application_status(application_id: int, data: ApplicationStatusUpdate,
                           company: dict = Depends(get_current_company),
                           applications: ApplicationService = Depends(get_application_service)):
    """Accept or reject a pending application. The student is notified by email."""
    application = applications.transition(application_id, company["user_id"], data.status)
    return {"success": True, "message": f"Application {data.status.value}", "data": application}


@router.delete("/{application_id}", response_model=MessageResponse)
def delete_application(application_id: int, student: dict = Depends(get_current_student),
                       applications: ApplicationService = Depends(get_application_service)):
    applications.withdraw(application_id, student["user_id"])
    return MessageResponse(message="Application deleted successfully")
