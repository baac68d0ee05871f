"""Customer model."""

from typing import Optional

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from credibill.models._base import AppScopedBase


class Customer(AppScopedBase):
    """Customer of an app."""

    __tablename__ = "customer"

    email: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    external_customer_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    __table_args__ = (Index("ix_customer_app_email", "app_id", "email"),)
