"""
Organization-related dependency injection functions.
"""
from app.features.organizations.service import OrganizationService
from app.features.users.dependencies import SessionFactory


def get_organization_service(session_factory: SessionFactory) -> OrganizationService:
    return OrganizationService(session_factory)
