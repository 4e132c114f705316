# File: /alembic/versions/20261018_document_tables.py | Version: 1.0 | Title: Document schema, property, view and record tables
"""document tables"""

from alembic import op
import sqlalchemy as sa

revision = "document_tables_20261018"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "document_schema",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("frozen", sa.Boolean(), nullable=True),
        sa.Column("frozen_reason", sa.String(length=500), nullable=True),
        sa.Column("owner_id", sa.String(), nullable=True),
        sa.Column("permissions", sa.JSON(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_document_schema_module", "document_schema", ["module"], unique=True)

    op.create_table(
        "schema_property",
        sa.Column("pk", sa.String(), primary_key=True, nullable=False),
        sa.Column("schema_id", sa.String(), sa.ForeignKey("document_schema.id", name=op.f("fk_schema_property_schema_id_document_schema")), nullable=False),
        sa.Column("property_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("required", sa.Boolean(), nullable=True),
        sa.Column("frozen", sa.Boolean(), nullable=True),
        sa.Column("visible", sa.Boolean(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("select_options", sa.JSON(), nullable=True),
        sa.Column("relation_config", sa.JSON(), nullable=True),
        sa.Column("formula_config", sa.JSON(), nullable=True),
        sa.Column("rollup_config", sa.JSON(), nullable=True),
        sa.Column("allow_edit", sa.Boolean(), nullable=True),
        sa.Column("allow_hide", sa.Boolean(), nullable=True),
        sa.Column("allow_delete", sa.Boolean(), nullable=True),
        sa.Column("frozen_reason", sa.String(length=500), nullable=True),
        sa.UniqueConstraint("schema_id", "property_id", name="uq_schema_property_id"),
    )
    op.create_index("ix_schema_property_schema_id", "schema_property", ["schema_id"])

    op.create_table(
        "schema_view",
        sa.Column("pk", sa.String(), primary_key=True, nullable=False),
        sa.Column("schema_id", sa.String(), sa.ForeignKey("document_schema.id", name=op.f("fk_schema_view_schema_id_document_schema")), nullable=False),
        sa.Column("view_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=True),
        sa.Column("filters", sa.JSON(), nullable=True),
        sa.Column("sorts", sa.JSON(), nullable=True),
        sa.Column("visible_properties", sa.JSON(), nullable=True),
        sa.Column("group_by", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.UniqueConstraint("schema_id", "view_id", name="uq_schema_view_id"),
    )
    op.create_index("ix_schema_view_schema_id", "schema_view", ["schema_id"])

    op.create_table(
        "schema_record",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("schema_id", sa.String(), sa.ForeignKey("document_schema.id", name=op.f("fk_schema_record_schema_id_document_schema")), nullable=False),
        sa.Column("values", sa.JSON(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("last_edited_by", sa.String(), nullable=True),
    )
    op.create_index("ix_schema_record_schema_position", "schema_record", ["schema_id", "position"])


def downgrade():
    op.drop_index("ix_schema_record_schema_position", table_name="schema_record")
    op.drop_table("schema_record")
    op.drop_index("ix_schema_view_schema_id", table_name="schema_view")
    op.drop_table("schema_view")
    op.drop_index("ix_schema_property_schema_id", table_name="schema_property")
    op.drop_table("schema_property")
    op.drop_index("ix_document_schema_module", table_name="document_schema")
    op.drop_table("document_schema")
