"""Organization models."""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credibill.models._base import Base


class Organization(Base):
    """Organization model. Owns apps and everything billed through them."""

    __tablename__ = "organization"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
