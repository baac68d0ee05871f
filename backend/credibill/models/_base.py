"""Base models for the application."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr

from credibill.core.datetime_utils import utc_now_naive


class Base(DeclarativeBase):
    """Base class for all models."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    created_at = Column(DateTime, default=utc_now_naive, nullable=False)
    modified_at = Column(DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False)


class OrganizationBase(Base):
    """Base class for organization-owned tables."""

    __abstract__ = True

    @declared_attr
    def organization_id(cls):
        """Organization ID column."""
        return Column(Uuid, ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)


class AppScopedBase(OrganizationBase):
    """Base class for tables that belong to one app of an organization."""

    __abstract__ = True

    @declared_attr
    def app_id(cls):
        """App ID column."""
        return Column(
            Uuid, ForeignKey("app.id", ondelete="CASCADE"), nullable=False, index=True
        )
