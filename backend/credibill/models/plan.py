"""Plan model."""

from typing import Optional

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credibill.models._base import AppScopedBase


class Plan(AppScopedBase):
    """Pricing plan a customer subscribes to."""

    __tablename__ = "plan"

    name: Mapped[str] = mapped_column(String, nullable=False)
    pricing_model: Mapped[str] = mapped_column(String(20), nullable=False, default="flat")
    # Smallest currency unit
    base_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    interval: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    trial_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Metered pricing of usage and hybrid plans
    usage_metric: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit_price: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    free_units: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
