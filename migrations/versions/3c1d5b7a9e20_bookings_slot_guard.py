"""bookings slot guard

Revision ID: 3c1d5b7a9e20
Revises: 
Create Date: 2026-10-18 09:12:44.501317

"""
from pathlib import Path
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '3c1d5b7a9e20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    project_root = Path(__file__).resolve().parents[2]
    sql_dir = project_root / "sql"

    for filename in ("001_extensions.sql", "010_schema.sql", "020_booking_guards.sql"):
        op.execute((sql_dir / filename).read_text())


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS bookings_guard_immutable ON bookings;")
    op.execute("DROP FUNCTION IF EXISTS bookings_guard_immutable();")
    op.drop_table("bookings", schema="public")
    op.execute("DROP EXTENSION IF EXISTS btree_gist;")
