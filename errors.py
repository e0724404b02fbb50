from __future__ import annotations


class AuraFitError(Exception):
    """Base class for errors raised by the AuraFit core."""


class CollaboratorError(AuraFitError):
    """The AI collaborator failed, timed out, or returned empty/malformed data."""


class DuplicateAccountError(AuraFitError):
    pass


class InvalidCredentialsError(AuraFitError):
    pass


class ProfileValidationError(AuraFitError):
    pass


class PlanNotFoundError(AuraFitError, LookupError):
    """A partial update targeted a plan that is missing or from a past week."""


class TemporalLockError(AuraFitError):
    """A same-day-only action was requested for a different day."""
