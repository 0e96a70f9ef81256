"""
SQLAlchemy ORM Models

Stored compliance records. The scoring engine never reads these directly;
the repositories convert them into immutable snapshots first. Derived
statuses and scores are not stored here.
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.compliance_engine.db.base import Base, SoftDeleteMixin, TimestampMixin


class StoreRecord(Base, TimestampMixin, SoftDeleteMixin):
    """Retail unit in the managed property."""
    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        comment="Short tenant code, e.g. FB001"
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    zone: Mapped[str] = mapped_column(String(100), nullable=False, comment="Precinct name")
    floor: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    store_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="FB, RETAIL, LUXURY, SERVICES, ATTRACTION or POPUP"
    )
    high_foot_traffic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    repeat_offender: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recent_red_count: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="RED events in the trailing 90 days"
    )

    compliance_items: Mapped[list["ComplianceItemRecord"]] = relationship(
        "ComplianceItemRecord",
        back_populates="store",
        cascade="all, delete-orphan"
    )
    corrective_actions: Mapped[list["CorrectiveActionRecord"]] = relationship(
        "CorrectiveActionRecord",
        back_populates="store",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_stores_zone", "zone"),
        Index("idx_stores_is_active", "is_active"),
        Index("idx_stores_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<StoreRecord(code={self.store_code}, zone={self.zone})>"


class ComplianceItemRecord(Base, TimestampMixin):
    """Compliance requirement registered for a store."""
    __tablename__ = "compliance_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    store: Mapped["StoreRecord"] = relationship("StoreRecord", back_populates="compliance_items")
    evidences: Mapped[list["EvidenceRecord"]] = relationship(
        "EvidenceRecord",
        back_populates="compliance_item",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_compliance_items_store_id", "store_id"),
        Index("idx_compliance_items_expiry_date", "expiry_date"),
    )

    def __repr__(self) -> str:
        return f"<ComplianceItemRecord(store_id={self.store_id}, category={self.category})>"


class EvidenceRecord(Base, TimestampMixin):
    """Uploaded evidence for a compliance item; the newest one counts."""
    __tablename__ = "evidences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    compliance_item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("compliance_items.id", ondelete="CASCADE"),
        nullable=False
    )
    file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    verification_status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="PENDING, VERIFIED or REJECTED"
    )

    compliance_item: Mapped["ComplianceItemRecord"] = relationship(
        "ComplianceItemRecord",
        back_populates="evidences"
    )


class CorrectiveActionRecord(Base, TimestampMixin):
    """Remediation task for a store, optionally raised by an audit."""
    __tablename__ = "corrective_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False
    )
    audit_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("audits.id", ondelete="SET NULL"),
        nullable=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="OPEN", nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    store: Mapped["StoreRecord"] = relationship("StoreRecord", back_populates="corrective_actions")

    __table_args__ = (
        Index("idx_corrective_actions_store_status", "store_id", "status"),
        Index("idx_corrective_actions_due_date", "due_date"),
    )


class PeakPeriodRecord(Base, TimestampMixin):
    """Calendar range (e.g. festive season) that boosts priority scores."""
    __tablename__ = "peak_periods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="date_range"),
    )


class AuditTemplateRecord(Base, TimestampMixin):
    __tablename__ = "audit_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    sections: Mapped[list["AuditSectionRecord"]] = relationship(
        "AuditSectionRecord",
        back_populates="template",
        order_by="AuditSectionRecord.position",
        cascade="all, delete-orphan"
    )


class AuditSectionRecord(Base):
    """
    Weighted section of an audit template.

    ``category`` is the compliance category the section's findings belong
    to, set when the template is authored.
    """
    __tablename__ = "audit_sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("audit_templates.id", ondelete="CASCADE"),
        nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    weight: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    template: Mapped["AuditTemplateRecord"] = relationship("AuditTemplateRecord", back_populates="sections")
    questions: Mapped[list["AuditQuestionRecord"]] = relationship(
        "AuditQuestionRecord",
        back_populates="section",
        order_by="AuditQuestionRecord.position",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("weight >= 1", name="min_weight"),
    )


class AuditQuestionRecord(Base):
    __tablename__ = "audit_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    section_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("audit_sections.id", ondelete="CASCADE"),
        nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    critical: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    section: Mapped["AuditSectionRecord"] = relationship("AuditSectionRecord", back_populates="questions")


class AuditRecord(Base, TimestampMixin):
    """One audit of one store against a template."""
    __tablename__ = "audits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False
    )
    template_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("audit_templates.id"),
        nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="DRAFT", nullable=False)

    template: Mapped["AuditTemplateRecord"] = relationship("AuditTemplateRecord")
    responses: Mapped[list["AuditResponseRecord"]] = relationship(
        "AuditResponseRecord",
        back_populates="audit",
        cascade="all, delete-orphan"
    )


class AuditResponseRecord(Base, TimestampMixin):
    __tablename__ = "audit_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    audit_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("audits.id", ondelete="CASCADE"),
        nullable=False
    )
    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("audit_questions.id", ondelete="CASCADE"),
        nullable=False
    )
    result: Mapped[Optional[str]] = mapped_column(String(5), nullable=True, comment="YES, NO or NA")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    severity: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    audit: Mapped["AuditRecord"] = relationship("AuditRecord", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("audit_id", "question_id", name="uq_audit_response_question"),
    )
