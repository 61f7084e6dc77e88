"""
Student Routes

GET /student/profile - Get own profile
POST /student/profile - Create or update profile
PUT /student/profile - Update provided fields of the profile
GET /student/check-profile - Whether the profile exists and is complete
PUT /student/change-password - Change password
"""

from fastapi import APIRouter, Depends, Response

from espacestage.core.auth import get_current_student
from espacestage.schemas.schemas import (
    ChangePasswordRequest, Envelope, MessageResponse, ProfileCheckResponse,
    StudentProfileRequest, StudentProfileResponse
)
from espacestage.services.account_service import AccountService, get_account_service
from espacestage.services.profile_service import STUDENT_PROFILE, ProfileService, get_profile_service

router = APIRouter(prefix="/student", tags=["Students"])


@router.get("/profile", response_model=Envelope[StudentProfileResponse])
def get_profile(student: dict = Depends(get_current_student),
                profiles: ProfileService = Depends(get_profile_service)):
    return {"success": True, "data": profiles.get(STUDENT_PROFILE, student["user_id"])}


@router.post("/profile", response_model=Envelope[StudentProfileResponse])
def save_profile(data: StudentProfileRequest, response: Response,
                 student: dict = Depends(get_current_student),
                 profiles: ProfileService = Depends(get_profile_service)):
    """
    Create or update the student profile.

    first_name and last_name are required. photo_url, cv_url and
    certificate_url accept a URL or a base64 data: URL (stored as a file).
    """
    profile, created = profiles.upsert(
        STUDENT_PROFILE, student["user_id"], data.model_dump(exclude_unset=True, mode="json")
    )
    response.status_code = 201 if created else 200
    message = "Profile created successfully" if created else "Profile updated successfully"
    return {"success": True, "message": message, "data": profile}


@router.put("/profile", response_model=Envelope[StudentProfileResponse])
def update_profile(data: StudentProfileRequest, student: dict = Depends(get_current_student),
                   profiles: ProfileService = Depends(get_profile_service)):
    """Update only the provided fields."""
    profile = profiles.update(
        STUDENT_PROFILE, student["user_id"], data.model_dump(exclude_unset=True, mode="json")
    )
    return {"success": True, "message": "Profile updated successfully", "data": profile}


@router.get("/check-profile", response_model=ProfileCheckResponse)
def check_profile(student: dict = Depends(get_current_student),
                  profiles: ProfileService = Depends(get_profile_service)):
    return profiles.check(STUDENT_PROFILE, student["user_id"])


@router.put("/change-password", response_model=MessageResponse)
def change_password(data: ChangePasswordRequest, student: dict = Depends(get_current_student),
                    accounts: AccountService = Depends(get_account_service)):
    accounts.change_password(student["user_id"], data.current_password, data.new_password)
    return MessageResponse(message="Password changed successfully")
