"""Scan audit trail."""

from permit_trust.services.scans.scan_service import ScanService

__all__ = ["ScanService"]
