"""Knowledge store baseline.

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alembic import op

from nutrikb.adapters.sqlalchemy.tables import metadata

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    metadata.drop_all(bind=op.get_bind())
