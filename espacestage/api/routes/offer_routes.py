"""
Offer Routes

GET /offres - List active offers with filters (public)
GET /offres/company/mine - Company's own offers, any status
GET /offres/{offer_id} - Get active offer details (public)
POST /offres - Create offer (company only)
PUT /offres/{offer_id} - Update offer (owning company or admin)
PUT /offres/{offer_id}/status - Activate/disable offer (owning company or admin)
DELETE /offres/{offer_id} - Delete offer and its applications (owning company or admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from espacestage.core.auth import get_company_or_admin, get_current_company
from espacestage.schemas.schemas import (
    Envelope, ListEnvelope, MessageResponse, OfferCreate, OfferResponse, OfferStatusUpdate, OfferUpdate
)
from espacestage.services.offer_service import OfferService, get_offer_service

router = APIRouter(prefix="/offres", tags=["Offers"])


@router.get("", response_model=ListEnvelope[OfferResponse])
def list_offers(
    domain: Optional[str] = Query(None),
    internship_type: Optional[str] = Query(None, alias="type"),
    location: Optional[str] = Query(None, description="Substring, case-insensitive"),
    paid: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Search in title and description"),
    offers: OfferService = Depends(get_offer_service),
):
    """List active offers, newest first."""
    results = offers.list_active(domain, internship_type, location, paid, search)
    return {"success": True, "count": len(results), "data": results}


@router.get("/company/mine", response_model=ListEnvelope[OfferResponse])
def my_offers(company: dict = Depends(get_current_company), offers: OfferService = Depends(get_offer_service)):
    """All offers of the calling company, with their application counts."""
    results = offers.list_for_company(company["user_id"])
    return {"success": True, "count": len(results), "data": results}


@router.get("/{offer_id}", response_model=Envelope[OfferResponse])
def get_offer(offer_id: int, offers: OfferService = Depends(get_offer_service)):
    return {"success": True, "data": offers.get_active(offer_id)}


@router.post("", response_model=Envelope[OfferResponse], status_code=201)
def create_offer(offer: OfferCreate, company: dict = Depends(get_current_company),
                 offers: OfferService = Depends(get_offer_service)):
    """Create a new offer. It is active immediately."""
    created = offers.create(company["user_id"], offer)
    return {"success": True, "message": "Offer created successfully", "data": created}


@router.put("/{offer_id}", response_model=Envelope[OfferResponse])
def update_offer(offer_id: int, changes: OfferUpdate, user: dict = Depends(get_company_or_admin),
                 offers: OfferService = Depends(get_offer_service)):
    updated = offers.update(offer_id, user, changes)
    return {"success": True, "message": "Offer updated successfully", "data": updated}


@router.put("/{offer_id}/status", response_model=Envelope[OfferResponse])
def set_offer_status(offer_id: int, data: OfferStatusUpdate, user: dict = Depends(get_company_or_admin),
                     offers: OfferService = Depends(get_offer_service)):
    updated = offers.set_status(offer_id, user, data.status)
    return {"success": True, "message": f"Offer {data.status.value}", "data": updated}


@router.delete("/{offer_id}", response_model=MessageResponse)
def delete_offer(offer_id: int, user: dict = Depends(get_company_or_admin),
                 offers: OfferService = Depends(get_offer_service)):
    offers.delete(offer_id, user)
    return MessageResponse(message="Offer deleted successfully")
