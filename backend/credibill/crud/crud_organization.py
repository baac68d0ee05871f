"""CRUD operations for organizations."""

from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.organization import Organization
from credibill.schemas.organization import OrganizationCreate, OrganizationUpdate


class CRUDOrganization(CRUDBaseSystem[Organization, OrganizationCreate, OrganizationUpdate]):
    """CRUD operations for organizations."""


organization = CRUDOrganization(Organization)
