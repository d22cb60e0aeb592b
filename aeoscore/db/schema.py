"""Table definitions for tenants, audits and visibility checks."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

JSONType = JSON().with_variant(JSONB(), "postgresql")

tenants = Table(
    "tenants",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("domain", Text, nullable=False, unique=True),
    Column("name", Text),
    Column("plan", Text, nullable=False, default="FREE"),
    Column("access_token", Text),
    Column("product_count", Integer, default=0),
    Column("ai_score", Integer),
    Column("last_audit_at", DateTime(timezone=True)),
)

product_audits = Table(
    "product_audits",
    metadata,
    Column("tenant_id", Integer, ForeignKey("tenants.id"), primary_key=True),
    Column("item_id", Text, primary_key=True),
    Column("title", Text, nullable=False),
    Column("handle", Text),
    Column("product_type", Text),
    Column("ai_score", Integer, nullable=False),
    Column("issues", JSONType, nullable=False),
    Column("has_images", Boolean, nullable=False),
    Column("has_description", Boolean, nullable=False),
    Column("has_metafields", Boolean, nullable=False),
    Column("description_length", Integer, nullable=False),
    Column("last_audit_at", DateTime(timezone=True), nullable=False),
)

visibility_checks = Table(
    "visibility_checks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("platform", Text, nullable=False),
    Column("query", Text, nullable=False),
    Column("is_mentioned", Boolean, nullable=False),
    Column("mention_context", Text),
    Column("position", Integer),
    Column("competitors_found", JSONType, nullable=False),
    Column("response_quality", Text, nullable=False),
    Column("raw_response", Text, nullable=False),
    Column("checked_at", DateTime(timezone=True), nullable=False),
    Index("ix_visibility_checks_tenant_checked", "tenant_id", "checked_at"),
)

audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tenant_id", Integer, ForeignKey("tenants.id"), nullable=False),
    Column("action", Text, nullable=False),
    Column("details", JSONType, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_audit_logs_tenant_action", "tenant_id", "action", "created_at"),
)
