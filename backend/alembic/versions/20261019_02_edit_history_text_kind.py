"""record which text each edit history row belongs to"""

from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

revision: str = '20261019_02'
down_revision: Union[str, Sequence[str], None] = '20261019_01'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('edit_history') as batch:
        batch.add_column(
            sa.Column('text_kind', sa.String(16), nullable=False, server_default='original')
        )
    # rows written for a language other than the entry's source are translation edits
    op.execute(
        """
        UPDATE edit_history SET text_kind = 'translation'
        WHERE language_code <> (
            SELECT text_entries.language_code FROM text_entries
            WHERE text_entries.id = edit_history.text_entry_id
        )
        """
    )


def downgrade() -> None:
    with op.batch_alter_table('edit_history') as batch:
        batch.drop_column('text_kind')
