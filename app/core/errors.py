"""
Typed conditions raised by the membership and authorization core.

Services raise these; the HTTP layer renders them in ``app.main`` as
``{"error": code, "detail": message}`` with the class's status code.
"""
from fastapi import status


class MembershipError(Exception):
    """Base class for every condition the core reports to its callers."""
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "MEMBERSHIP_ERROR"
    default_message: str = "Request could not be completed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticatedError(MembershipError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"
    default_message = "Authentication required"


class NotFoundError(MembershipError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Not found"


class PermissionDeniedError(MembershipError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "PERMISSION_DENIED"
    default_message = "Permission denied"


class DuplicateNameError(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATE_NAME"
    default_message = "A role with this name already exists in the organization"


class DuplicateRequestError(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATE_REQUEST"
    default_message = "You already have a pending request for this organization"


class AlreadyMemberError(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_MEMBER"
    default_message = "User is already a member of this organization"


class InvalidCodeError(MembershipError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "INVALID_CODE"
    default_message = "Invalid join code"


class RoleInUseError(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "ROLE_IN_USE"
    default_message = "Cannot delete role with assigned members. Please reassign members first."


class RoleOrgMismatchError(MembershipError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ROLE_ORG_MISMATCH"
    default_message = "Role belongs to a different organization"


class AlreadyProcessedError(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_PROCESSED"
    default_message = "This request has already been reviewed"


class InvalidSlugError(MembershipError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_SLUG"
    default_message = "Use 3-50 lowercase letters, numbers, and single hyphens only."


class ConflictError(MembershipError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "The data changed while saving. Please reload and try again."


class ConfirmationMismatchError(MembershipError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "CONFIRMATION_MISMATCH"
    default_message = "Type the organization name exactly to confirm deletion"
