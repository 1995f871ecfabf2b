"""create notes table with owner policies

Revision ID: 5c1e8f2a9b47
Revises:
Create Date: 2026-10-19 09:12:03.418207

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e8f2a9b47"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# (policy name, command, clause) - one per statement type, all owner-only
OWNER_POLICIES = [
    ("Users can view their own notes", "SELECT", "USING (auth.uid() = user_id)"),
    ("Users can insert their own notes", "INSERT", "WITH CHECK (auth.uid() = user_id)"),
    ("Users can update their own notes", "UPDATE", "USING (auth.uid() = user_id)"),
    ("Users can delete their own notes", "DELETE", "USING (auth.uid() = user_id)"),
]


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def _has_auth_schema() -> bool:
    return bool(
        op.get_bind()
        .execute(sa.text("select 1 from information_schema.schemata where schema_name = 'auth'"))
        .scalar()
    )


def upgrade() -> None:
    postgres = _is_postgres()
    op.create_table(
        "notes",
        sa.Column(
            "id",
            sa.Uuid(),
            server_default=sa.text("gen_random_uuid()") if postgres else None,
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()") if postgres else sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()") if postgres else sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notes_user_id"), "notes", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_notes_updated_at"), "notes", [sa.text("updated_at DESC")], unique=False
    )

    if not postgres:
        return

    # Owners live in the hosted provider's auth schema
    if _has_auth_schema():
        op.create_foreign_key(
            "fk_notes_user_id",
            "notes",
            "users",
            ["user_id"],
            ["id"],
            referent_schema="auth",
            ondelete="CASCADE",
        )

        op.execute("ALTER TABLE notes ENABLE ROW LEVEL SECURITY")
        for name, command, clause in OWNER_POLICIES:
            op.execute(f'CREATE POLICY "{name}" ON notes FOR {command} {clause}')

    op.execute(
        """
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
          NEW.updated_at = GREATEST(NOW(), OLD.updated_at + INTERVAL '1 microsecond');
          RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
        """
    )
    op.execute(
        "CREATE TRIGGER update_notes_updated_at BEFORE UPDATE ON notes "
        "FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()"
    )


def downgrade() -> None:
    if _is_postgres():
        op.execute("DROP TRIGGER IF EXISTS update_notes_updated_at ON notes")
        op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
        for name, _, _ in OWNER_POLICIES:
            op.execute(f'DROP POLICY IF EXISTS "{name}" ON notes')
    op.drop_index(op.f("ix_notes_updated_at"), table_name="notes")
    op.drop_index(op.f("ix_notes_user_id"), table_name="notes")
    op.drop_table("notes")
