import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    Table,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="translator")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


text_entry_tags = Table(
    "text_entry_tags",
    Base.metadata,
    Column(
        "text_entry_id",
        UUID(as_uuid=True),
        ForeignKey("text_entries.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        UUID(as_uuid=True),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class TextEntry(Base):
    __tablename__ = "text_entries"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    label = Column(String, unique=True, nullable=False)
    file_category = Column(String, index=True)
    original_text = Column(Text)
    language_code = Column(String(16), nullable=False, default="ja")
    status = Column(String, nullable=False, default="pending", index=True)
    max_chars = Column(Integer)
    max_lines = Column(Integer)
    # bumped on every mutation; callers may pass it back as expected_version
    version = Column(Integer, nullable=False, default=1)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    creator = relationship("User", foreign_keys=[created_by])
    updater = relationship("User", foreign_keys=[updated_by])
    translations = relationship(
        "Translation",
        back_populates="text_entry",
        cascade="all, delete-orphan",
        order_by="Translation.language_code",
    )
    history = relationship(
        "EditHistory",
        back_populates="text_entry",
        cascade="all, delete-orphan",
        order_by="EditHistory.sequence.desc()",
    )
    sessions = relationship(
        "EditSession",
        back_populates="text_entry",
        cascade="all, delete-orphan",
    )
    tags = relationship("Tag", secondary=text_entry_tags, back_populates="text_entries")


class Translation(Base):
    __tablename__ = "translations"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    text_entry_id = Column(
        UUID(as_uuid=True), ForeignKey("text_entries.id", ondelete="CASCADE"), nullable=False
    )
    language_code = Column(String(16), nullable=False)
    translated_text = Column(Text)
    status = Column(String, nullable=False, default="pending")
    translator_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    reviewer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    text_entry = relationship("TextEntry", back_populates="translations")

    __table_args__ = (
        sa.UniqueConstraint("text_entry_id", "language_code", name="uq_translation_entry_language"),
    )


class EditHistory(Base):
    """Append-only ledger row; see ``forest.history``."""

    __tablename__ = "edit_history"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    text_entry_id = Column(
        UUID(as_uuid=True), ForeignKey("text_entries.id", ondelete="CASCADE"), nullable=False
    )
    # per-entry append order, 1-based
    sequence = Column(Integer, nullable=False)
    language_code = Column(String(16), nullable=False)
    old_text = Column(Text)
    new_text = Column(Text)
    edited_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    edit_type = Column(String, nullable=False)
    # which text the row belongs to; the entry's language_code may change later
    text_kind = Column(String(16), nullable=False, default="original")
    created_at = Column(DateTime, default=_utcnow)

    text_entry = relationship("TextEntry", back_populates="history")
    editor = relationship("User")

    __table_args__ = (
        sa.UniqueConstraint("text_entry_id", "sequence", name="uq_edit_history_entry_sequence"),
    )

    @property
    def editor_name(self) -> str | None:
        return self.editor.username if self.editor else None

    @property
    def editor_role(self) -> str | None:
        return self.editor.role if self.editor else None


class FileHistory(Base):
    __tablename__ = "file_history"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    filename = Column(String, nullable=False)
    file_type = Column(String, nullable=False)  # import | export
    file_format = Column(String, nullable=False, default="csv")
    file_path = Column(String)
    record_count = Column(Integer, default=0)
    status = Column(String, nullable=False)  # success | failed | processing
    error_message = Column(Text)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=_utcnow)


class EditSession(Base):
    __tablename__ = "edit_sessions"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    text_entry_id = Column(
        UUID(as_uuid=True), ForeignKey("text_entries.id", ondelete="CASCADE"), nullable=False
    )
    language_code = Column(String(16))
    started_at = Column(DateTime, default=_utcnow)
    last_activity = Column(DateTime, default=_utcnow)
    is_active = Column(Boolean, default=True, nullable=False)

    user = relationship("User")
    text_entry = relationship("TextEntry", back_populates="sessions")

    @property
    def username(self) -> str | None:
        return self.user.username if self.user else None


class Character(Base):
    __tablename__ = "characters"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, unique=True, nullable=False)
    pronoun_first = Column(String)
    pronoun_second = Column(String)
    face_graphic = Column(String)
    description = Column(Text)
    traits = Column(Text)
    favorites = Column(Text)
    dislikes = Column(Text)
    special_reactions = Column(Text)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class Tag(Base):
    __tablename__ = "tags"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, unique=True, nullable=False)
    display_text = Column(String)
    icon = Column(String)
    description = Column(Text)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    text_entries = relationship("TextEntry", secondary=text_entry_tags, back_populates="tags")


class ForbiddenWord(Base):
    __tablename__ = "forbidden_words"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    word = Column(String, unique=True, nullable=False)
    replacement = Column(String)
    reason = Column(Text)
    category = Column(String)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class ProperNoun(Base):
    __tablename__ = "proper_nouns"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    term = Column(String, unique=True, nullable=False)
    reading = Column(String)
    translation = Column(String)
    category = Column(String)
    description = Column(Text)
    style_guide_ref = Column(String)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class Style(Base):
    __tablename__ = "styles"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, unique=True, nullable=False)
    font = Column(String)
    max_chars = Column(Integer)
    max_lines = Column(Integer)
    font_size = Column(Integer)
    auto_format_rules = Column(Text)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    action = Column(String, nullable=False)
    target_type = Column(String)
    target_id = Column(UUID(as_uuid=True))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=_utcnow)


@sa.event.listens_for(EditHistory, "before_update")
def _refuse_history_rewrite(mapper, connection, target):
    raise RuntimeError("edit_history rows are append-only")
