"""Permit store access and approval."""

from permit_trust.services.permits.exceptions import PermitAlreadyApproved, PermitNotApproved, PermitNotFound
from permit_trust.services.permits.issuance_service import ApprovalResult, PermitIssuanceService
from permit_trust.services.permits.permit_store import PermitStore

__all__ = [
    "ApprovalResult",
    "PermitAlreadyApproved",
    "PermitIssuanceService",
    "PermitNotApproved",
    "PermitNotFound",
    "PermitStore",
]
