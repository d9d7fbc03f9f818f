"""initial text entry, ledger, glossary and audit schema"""

from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

revision: str = '20261019_01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def _user_ref(name: str, ondelete: str = 'SET NULL', nullable: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.UUID(as_uuid=True),
        sa.ForeignKey('users.id', ondelete=ondelete),
        nullable=nullable,
    )


def _entry_ref() -> sa.Column:
    return sa.Column(
        'text_entry_id',
        sa.UUID(as_uuid=True),
        sa.ForeignKey('text_entries.id', ondelete='CASCADE'),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('username', sa.String(), nullable=False, unique=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='translator'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'text_entries',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('label', sa.String(), nullable=False, unique=True),
        sa.Column('file_category', sa.String(), nullable=True),
        sa.Column('original_text', sa.Text(), nullable=True),
        sa.Column('language_code', sa.String(16), nullable=False, server_default='ja'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('max_chars', sa.Integer(), nullable=True),
        sa.Column('max_lines', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        _user_ref('created_by'),
        _user_ref('updated_by'),
        *_timestamps(),
    )
    op.create_index('ix_text_entries_status', 'text_entries', ['status'])
    op.create_index('ix_text_entries_file_category', 'text_entries', ['file_category'])
    op.create_table(
        'translations',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        _entry_ref(),
        sa.Column('language_code', sa.String(16), nullable=False),
        sa.Column('translated_text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        _user_ref('translator_id'),
        _user_ref('reviewer_id'),
        *_timestamps(),
        sa.UniqueConstraint('text_entry_id', 'language_code', name='uq_translation_entry_language'),
    )
    op.create_table(
        'edit_history',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        _entry_ref(),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('language_code', sa.String(16), nullable=False),
        sa.Column('old_text', sa.Text(), nullable=True),
        sa.Column('new_text', sa.Text(), nullable=True),
        _user_ref('edited_by'),
        sa.Column('edit_type', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('text_entry_id', 'sequence', name='uq_edit_history_entry_sequence'),
    )
    op.create_table(
        'file_history',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('file_type', sa.String(), nullable=False),
        sa.Column('file_format', sa.String(), nullable=False, server_default='csv'),
        sa.Column('file_path', sa.String(), nullable=True),
        sa.Column('record_count', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        _user_ref('user_id'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'edit_sessions',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        _user_ref('user_id', ondelete='CASCADE', nullable=False),
        _entry_ref(),
        sa.Column('language_code', sa.String(16), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('last_activity', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        'characters',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('pronoun_first', sa.String(), nullable=True),
        sa.Column('pronoun_second', sa.String(), nullable=True),
        sa.Column('face_graphic', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('traits', sa.Text(), nullable=True),
        sa.Column('favorites', sa.Text(), nullable=True),
        sa.Column('dislikes', sa.Text(), nullable=True),
        sa.Column('special_reactions', sa.Text(), nullable=True),
        _user_ref('created_by'),
        _user_ref('updated_by'),
        *_timestamps(),
    )
    op.create_table(
        'tags',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('display_text', sa.String(), nullable=True),
        sa.Column('icon', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'text_entry_tags',
        sa.Column(
            'text_entry_id',
            sa.UUID(as_uuid=True),
            sa.ForeignKey('text_entries.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column(
            'tag_id',
            sa.UUID(as_uuid=True),
            sa.ForeignKey('tags.id', ondelete='CASCADE'),
            primary_key=True,
        ),
    )
    op.create_table(
        'forbidden_words',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('word', sa.String(), nullable=False, unique=True),
        sa.Column('replacement', sa.String(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'proper_nouns',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('term', sa.String(), nullable=False, unique=True),
        sa.Column('reading', sa.String(), nullable=True),
        sa.Column('translation', sa.String(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('style_guide_ref', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'styles',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('font', sa.String(), nullable=True),
        sa.Column('max_chars', sa.Integer(), nullable=True),
        sa.Column('max_lines', sa.Integer(), nullable=True),
        sa.Column('font_size', sa.Integer(), nullable=True),
        sa.Column('auto_format_rules', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        _user_ref('user_id'),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('target_type', sa.String(), nullable=True),
        sa.Column('target_id', sa.UUID(as_uuid=True), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        'audit_logs',
        'styles',
        'proper_nouns',
        'forbidden_words',
        'text_entry_tags',
        'tags',
        'characters',
        'edit_sessions',
        'file_history',
        'edit_history',
        'translations',
    ):
        op.drop_table(table)
    op.drop_index('ix_text_entries_file_category', table_name='text_entries')
    op.drop_index('ix_text_entries_status', table_name='text_entries')
    op.drop_table('text_entries')
    op.drop_table('users')
