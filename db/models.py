"""SQLAlchemy 2.0 ORM models for the CRM core zone.

Covers 4 tables in schema crm:
  - companies, contacts: Official (CORE) records
  - opportunity_contact_links: opportunity <-> contact association
  - promotion_intents: persisted RAW -> CORE promotion saga record

Identities are text because they are generated by the application
(C<millis>, COMP_<millis>_<rand>) and shared with the legacy sheets.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


def _created() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


def _updated() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ===========================================================================
# Schema: crm
# ===========================================================================


class Company(Base):
    """crm.companies — Official company record."""

    __tablename__ = "companies"
    __table_args__ = ({"schema": "crm"},)

    company_id: Mapped[str] = mapped_column(Text, primary_key=True)
    company_name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_stage: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    interaction_rating: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_time: Mapped[datetime] = _created()
    updated_time: Mapped[datetime] = _updated()
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Contact(Base):
    """crm.contacts — Official contact, possibly promoted from a RAW row."""

    __tablename__ = "contacts"
    __table_args__ = ({"schema": "crm"},)

    contact_id: Mapped[str] = mapped_column(Text, primary_key=True)
    # RAW:<row_index> when the contact was promoted from the business-card pool
    source_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mobile: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_time: Mapped[datetime] = _created()
    updated_time: Mapped[datetime] = _updated()
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class OpportunityContactLink(Base):
    """crm.opportunity_contact_links — one row per (opportunity, contact)."""

    __tablename__ = "opportunity_contact_links"
    __table_args__ = (
        CheckConstraint(
            "link_status IN ('active', 'removed')",
            name="ck_opp_contact_link_status",
        ),
        {"schema": "crm"},
    )

    opportunity_id: Mapped[str] = mapped_column(Text, primary_key=True)
    contact_id: Mapped[str] = mapped_column(Text, primary_key=True)
    link_status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="active"
    )
    created_time: Mapped[datetime] = _created()
    updated_time: Mapped[datetime] = _updated()
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PromotionIntent(Base):
    """crm.promotion_intents — pending RAW status write after a promotion."""

    __tablename__ = "promotion_intents"
    __table_args__ = (
        CheckConstraint(
            "action IN ('upgrade', 'link')",
            name="ck_promotion_intent_action",
        ),
        CheckConstraint(
            "status IN ('pending', 'completed')",
            name="ck_promotion_intent_status",
        ),
        {"schema": "crm"},
    )

    intent_id: Mapped[str] = mapped_column(Text, primary_key=True)
    source_ref: Mapped[str] = mapped_column(Text, nullable=False)
    # name|company|createdTime of the RAW row, to find it again after row shifts
    source_fingerprint: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    official_id: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="pending", index=True
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_time: Mapped[datetime] = _created()
    updated_time: Mapped[datetime] = _updated()
