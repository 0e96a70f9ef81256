"""
Declarative Base for Compliance Records

Constraint names follow one convention so PostgreSQL and the SQLite test
databases produce the same schema.
"""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for every stored compliance record."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    """
    Creation and last-change times.

    A store's ``updated_at`` decides which risk-radar window it falls into.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Records are deactivated, never deleted; inactive rows are left out of scoring."""

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="False once the record is retired"
    )

    @classmethod
    def only_active(cls):
        """Filter clause selecting active rows."""
        return cls.is_active.is_(True)


def import_all_models():
    """Register every model on ``Base.metadata`` before ``create_all``."""
    from src.compliance_engine.db import models  # noqa: F401
