"""Events API package."""

from permit_trust.api.v1.events.routes import router

__all__ = ["router"]
