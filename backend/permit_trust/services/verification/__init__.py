"""Scanned token verification."""

from permit_trust.services.verification.verification_service import (
    VerificationOutcome,
    VerificationService,
    VerificationStatus,
)

__all__ = ["VerificationOutcome", "VerificationService", "VerificationStatus"]
