# File: /docview/models/documents.py | Version: 1.0 | Title: Document schema, property, view and record tables
from __future__ import annotations

from datetime import datetime, UTC
from typing import Any, List as TList, Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docview.db.base_class import Base


def gen_uuid() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentSchema(Base):
    """One schema per module."""

    __tablename__ = "document_schema"
    id: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    module: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    frozen: Mapped[bool] = mapped_column(Boolean, default=False)
    frozen_reason: Mapped[Optional[str]] = mapped_column(String(500))
    owner_id: Mapped[Optional[str]] = mapped_column(String)
    permissions: Mapped[Optional[Any]] = mapped_column(JSON, default=list)
    tags: Mapped[Optional[Any]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    properties: Mapped[TList["SchemaProperty"]] = relationship(
        back_populates="schema", cascade="all, delete-orphan", order_by="SchemaProperty.position"
    )
    views: Mapped[TList["SchemaView"]] = relationship(
        back_populates="schema", cascade="all, delete-orphan", order_by="SchemaView.position"
    )
    records: Mapped[TList["SchemaRecord"]] = relationship(
        back_populates="schema", cascade="all, delete-orphan", order_by="SchemaRecord.position"
    )


class SchemaProperty(Base):
    __tablename__ = "schema_property"
    pk: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    schema_id: Mapped[str] = mapped_column(ForeignKey("document_schema.id"), index=True, nullable=False)
    property_id: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, default=False)
    frozen: Mapped[bool] = mapped_column(Boolean, default=False)
    visible: Mapped[bool] = mapped_column(Boolean, default=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    position: Mapped[int] = mapped_column(Integer, default=0)
    description: Mapped[Optional[str]] = mapped_column(Text)
    select_options: Mapped[Optional[Any]] = mapped_column(JSON)
    relation_config: Mapped[Optional[Any]] = mapped_column(JSON)
    formula_config: Mapped[Optional[Any]] = mapped_column(JSON)
    rollup_config: Mapped[Optional[Any]] = mapped_column(JSON)
    allow_edit: Mapped[Optional[bool]] = mapped_column(Boolean)
    allow_hide: Mapped[Optional[bool]] = mapped_column(Boolean)
    allow_delete: Mapped[Optional[bool]] = mapped_column(Boolean)
    frozen_reason: Mapped[Optional[str]] = mapped_column(String(500))

    schema: Mapped["DocumentSchema"] = relationship(back_populates="properties")

    __table_args__ = (UniqueConstraint("schema_id", "property_id", name="uq_schema_property_id"),)


class SchemaView(Base):
    __tablename__ = "schema_view"
    pk: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    schema_id: Mapped[str] = mapped_column(ForeignKey("document_schema.id"), index=True, nullable=False)
    view_id: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="TABLE")
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    filters: Mapped[Optional[Any]] = mapped_column(JSON, default=list)
    sorts: Mapped[Optional[Any]] = mapped_column(JSON, default=list)
    visible_properties: Mapped[Optional[Any]] = mapped_column(JSON, default=list)
    group_by: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0)

    schema: Mapped["DocumentSchema"] = relationship(back_populates="views")

    __table_args__ = (UniqueConstraint("schema_id", "view_id", name="uq_schema_view_id"),)


class SchemaRecord(Base):
    __tablename__ = "schema_record"
    id: Mapped[str] = mapped_column(String, primary_key=True, default=gen_uuid)
    schema_id: Mapped[str] = mapped_column(ForeignKey("document_schema.id"), nullable=False)
    values: Mapped[Optional[Any]] = mapped_column(JSON, default=dict)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String)
    last_edited_by: Mapped[Optional[str]] = mapped_column(String)

    schema: Mapped["DocumentSchema"] = relationship(back_populates="records")

    __table_args__ = (Index("ix_schema_record_schema_position", "schema_id", "position"),)
