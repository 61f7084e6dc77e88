"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in schemas.py; import them from there:
    from espacestage.schemas.schemas import OfferCreate, OfferResponse
"""
