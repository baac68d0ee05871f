"""App model."""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credibill.core.shared_models import AppStatus
from credibill.models._base import OrganizationBase


class App(OrganizationBase):
    """A billing application of an organization.

    `grace_period` is nullable in storage only so that a misconfigured app can be
    represented; billing code treats a missing value as a configuration error.
    """

    __tablename__ = "app"

    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppStatus.ACTIVE.value
    )
    grace_period: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # days
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    webhook_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    webhook_secret: Mapped[Optional[str]] = mapped_column(String, nullable=True)
