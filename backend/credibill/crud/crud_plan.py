"""CRUD operations for plans."""

from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.plan import Plan
from credibill.schemas.plan import PlanCreate, PlanUpdate


class CRUDPlan(CRUDBaseSystem[Plan, PlanCreate, PlanUpdate]):
    """CRUD operations for plans."""


plan = CRUDPlan(Plan)
