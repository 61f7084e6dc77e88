"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from espacestage.api.routes.admin_routes import router as admin_router
from espacestage.api.routes.application_routes import router as application_router
from espacestage.api.routes.auth_routes import router as auth_router
from espacestage.api.routes.company_routes import router as company_router
from espacestage.api.routes.file_routes import router as file_router
from espacestage.api.routes.offer_routes import router as offer_router
from espacestage.api.routes.student_routes import router as student_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(student_router)
api_router.include_router(company_router)
api_router.include_router(offer_router)
api_router.include_router(application_router)
api_router.include_router(admin_router)
api_router.include_router(file_router)
