"""Permit domain exceptions."""

from permit_trust.services.exceptions import NotFoundError, ValidationError


class PermitNotFound(NotFoundError):
    """Permit not found."""

    pass


class PermitAlreadyApproved(ValidationError):
    """Permit already carries a document number."""

    pass


class PermitNotApproved(ValidationError):
    """Operation requires an approved permit."""

    pass
