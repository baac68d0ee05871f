"""CRUD operations for apps."""

from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.app import App
from credibill.schemas.app import AppCreate, AppUpdate


class CRUDApp(CRUDBaseSystem[App, AppCreate, AppUpdate]):
    """CRUD operations for apps."""


app = CRUDApp(App)
