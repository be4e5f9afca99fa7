"""Permits API package.

This package contains permit-related API endpoints organized by domain:
- permit_routes: approval and token reissue
- scan_routes: scan audit trail queries
- document_number_routes: counter inspection and preview
"""

from fastapi import APIRouter

from permit_trust.api.v1.permits.document_number_routes import router as document_number_router
from permit_trust.api.v1.permits.permit_routes import router as permit_router
from permit_trust.api.v1.permits.scan_routes import router as scan_router

# Create a combined router for all permit-related endpoints
router = APIRouter()

# Include all sub-routers
router.include_router(permit_router)
router.include_router(scan_router)
router.include_router(document_number_router)

__all__ = ["router"]
