"""
Company Routes

GET /company/profile - Get own profile
POST /company/profile - Create or update profile
PUT /company/profile - Update provided fields of the profile
GET /company/check-profile - Whether the profile exists and is complete
PUT /company/change-password - Change password
"""

from fastapi import APIRouter, Depends, Response

from espacestage.core.auth import get_current_company
from espacestage.schemas.schemas import (
    ChangePasswordRequest, CompanyProfileRequest, CompanyProfileResponse, Envelope,
    MessageResponse, ProfileCheckResponse
)
from espacestage.services.account_service import AccountService, get_account_service
from espacestage.services.profile_service import COMPANY_PROFILE, ProfileService, get_profile_service

router = APIRouter(prefix="/company", tags=["Companies"])


@router.get("/profile", response_model=Envelope[CompanyProfileResponse])
def get_profile(company: dict = Depends(get_current_company),
                profiles: ProfileService = Depends(get_profile_service)):
    return {"success": True, "data": profiles.get(COMPANY_PROFILE, company["user_id"])}


@router.post("/profile", response_model=Envelope[CompanyProfileResponse])
def save_profile(data: CompanyProfileRequest, response: Response,
                 company: dict = Depends(get_current_company),
                 profiles: ProfileService = Depends(get_profile_service)):
    """Create or update the company profile. company_name and sector are required."""
    profile, created = profiles.upsert(
        COMPANY_PROFILE, company["user_id"], data.model_dump(exclude_unset=True, mode="json")
    )
    response.status_code = 201 if created else 200
    message = "Profile created successfully" if created else "Profile updated successfully"
    return {"success": True, "message": message, "data": profile}


@router.put("/profile", response_model=Envelope[CompanyProfileResponse])
def update_profile(data: CompanyProfileRequest, company: dict = Depends(get_current_company),
                   profiles: ProfileService = Depends(get_profile_service)):
    profile = profiles.update(
        COMPANY_PROFILE, company["user_id"], data.model_dump(exclude_unset=True, mode="json")
    )
    return {"success": True, "message": "Profile updated successfully", "data": profile}


@router.get("/check-profile", response_model=ProfileCheckResponse)
def check_profile(company: dict = Depends(get_current_company),
                  profiles: ProfileService = Depends(get_profile_service)):
    return profiles.check(COMPANY_PROFILE, company["user_id"])


@router.put("/change-password", response_model=MessageResponse)
def change_password(data: ChangePasswordRequest, company: dict = Depends(get_current_company),
                    accounts: AccountService = Depends(get_account_service)):
    accounts.change_password(company["user_id"], data.current_password, data.new_password)
    return MessageResponse(message="Password changed successfully")
