"""CRUD operations for customers."""

from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.customer import Customer
from credibill.schemas.customer import CustomerCreate, CustomerUpdate


class CRUDCustomer(CRUDBaseSystem[Customer, CustomerCreate, CustomerUpdate]):
    """CRUD operations for customers."""


customer = CRUDCustomer(Customer)
