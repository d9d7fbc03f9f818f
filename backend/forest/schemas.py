from datetime import datetime
from typing import Optional, Any, Dict, List
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from uuid import UUID

from .rbac import Role


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8)
    role: Role = Role.TRANSLATOR


class UserOut(BaseModel):
    id: UUID
    username: str
    email: EmailStr
    role: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class PermissionsOut(BaseModel):
    role: str
    permissions: List[str]


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserOut] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TagOut(BaseModel):
    id: UUID
    name: str
    display_text: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class TextEntryCreate(BaseModel):
    label: str
    file_category: Optional[str] = None
    original_text: Optional[str] = None
    language_code: Optional[str] = None
    status: Optional[str] = None
    max_chars: Optional[int] = Field(default=None, ge=0)
    max_lines: Optional[int] = Field(default=None, ge=0)
    tag_ids: List[UUID] = []


class TextEntryUpdate(BaseModel):
    label: Optional[str] = None
    file_category: Optional[str] = None
    original_text: Optional[str] = None
    language_code: Optional[str] = None
    status: Optional[str] = None
    max_chars: Optional[int] = Field(default=None, ge=0)
    max_lines: Optional[int] = Field(default=None, ge=0)
    expected_version: Optional[int] = None


class TranslationUpsert(BaseModel):
    translated_text: Optional[str] = None
    status: Optional[str] = None


class TranslationOut(BaseModel):
    id: UUID
    text_entry_id: UUID
    language_code: str
    translated_text: Optional[str] = None
    status: str
    translator_id: Optional[UUID] = None
    reviewer_id: Optional[UUID] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TextEntryOut(BaseModel):
    id: UUID
    label: str
    file_category: Optional[str] = None
    original_text: Optional[str] = None
    language_code: str
    status: str
    max_chars: Optional[int] = None
    max_lines: Optional[int] = None
    version: int
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    translations: List[TranslationOut] = []
    tags: List[TagOut] = []
    model_config = ConfigDict(from_attributes=True)


class TextEntryPage(BaseModel):
    items: List[TextEntryOut]
    total: int
    page: int
    limit: int
    pages: int


class EntryTagsUpdate(BaseModel):
    tag_ids: List[UUID] = []


class HistoryOut(BaseModel):
    id: UUID
    text_entry_id: UUID
    sequence: int
    language_code: str
    old_text: Optional[str] = None
    new_text: Optional[str] = None
    edited_by: Optional[UUID] = None
    editor_name: Optional[str] = None
    editor_role: Optional[str] = None
    edit_type: str
    text_kind: str = "original"
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class HistoryPage(BaseModel):
    items: List[HistoryOut]
    total: int
    limit: int
    offset: int
    has_more: bool


class RevertRequest(BaseModel):
    history_id: UUID


class EditSessionTouch(BaseModel):
    language_code: Optional[str] = None


class EditSessionOut(BaseModel):
    id: UUID
    user_id: UUID
    username: Optional[str] = None
    text_entry_id: UUID
    language_code: Optional[str] = None
    started_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TextEntryDetail(TextEntryOut):
    history: List[HistoryOut] = []
    active_sessions: List[EditSessionOut] = []


class ImportResult(BaseModel):
    success: bool
    created: int
    updated: int
    errors: List[str]
    total_rows: int
    file_history_id: Optional[UUID] = None


class ExportRequest(BaseModel):
    status: Optional[str] = None
    category: Optional[str] = None
    search: Optional[str] = None
    include_translations: bool = True


class FileHistoryOut(BaseModel):
    id: UUID
    filename: str
    file_type: str
    file_format: str
    record_count: Optional[int] = 0
    status: str
    error_message: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ProgressGroup(BaseModel):
    key: Optional[str] = None
    total: int
    counts: Dict[str, int]
    percentage: float
    completion_rate: float


class RecentActivity(BaseModel):
    id: UUID
    text_entry_id: UUID
    label: Optional[str] = None
    edit_type: str
    language_code: str
    editor_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ProgressOut(BaseModel):
    group_by: str
    total: int
    totals: Dict[str, int]
    groups: List[ProgressGroup]
    recent_activity: List[RecentActivity]


class CharacterBase(BaseModel):
    name: str = Field(min_length=1)
    pronoun_first: Optional[str] = None
    pronoun_second: Optional[str] = None
    face_graphic: Optional[str] = None
    description: Optional[str] = None
    traits: Optional[str] = None
    favorites: Optional[str] = None
    dislikes: Optional[str] = None
    special_reactions: Optional[str] = None


class CharacterCreate(CharacterBase):
    pass


class CharacterUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    pronoun_first: Optional[str] = None
    pronoun_second: Optional[str] = None
    face_graphic: Optional[str] = None
    description: Optional[str] = None
    traits: Optional[str] = None
    favorites: Optional[str] = None
    dislikes: Optional[str] = None
    special_reactions: Optional[str] = None


class CharacterOut(CharacterBase):
    id: UUID
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TagCreate(BaseModel):
    name: str = Field(min_length=1)
    display_text: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None


class TagUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    display_text: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None


class ForbiddenWordBase(BaseModel):
    word: str = Field(min_length=1)
    replacement: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[str] = None


class ForbiddenWordCreate(ForbiddenWordBase):
    pass


class ForbiddenWordUpdate(BaseModel):
    word: Optional[str] = Field(default=None, min_length=1)
    replacement: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[str] = None


class ForbiddenWordOut(ForbiddenWordBase):
    id: UUID
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ForbiddenWordCheck(BaseModel):
    text: str


class ForbiddenWordMatch(BaseModel):
    word: str
    replacement: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[str] = None
    positions: List[int]


class ProperNounBase(BaseModel):
    term: str = Field(min_length=1)
    reading: Optional[str] = None
    translation: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    style_guide_ref: Optional[str] = None


class ProperNounCreate(ProperNounBase):
    pass


class ProperNounUpdate(BaseModel):
    term: Optional[str] = Field(default=None, min_length=1)
    reading: Optional[str] = None
    translation: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    style_guide_ref: Optional[str] = None


class ProperNounOut(ProperNounBase):
    id: UUID
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class StyleBase(BaseModel):
    name: str = Field(min_length=1)
    font: Optional[str] = None
    max_chars: Optional[int] = Field(default=None, ge=0)
    max_lines: Optional[int] = Field(default=None, ge=0)
    font_size: Optional[int] = Field(default=None, gt=0)
    auto_format_rules: Optional[str] = None


class StyleCreate(StyleBase):
    pass


class StyleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    font: Optional[str] = None
    max_chars: Optional[int] = Field(default=None, ge=0)
    max_lines: Optional[int] = Field(default=None, ge=0)
    font_size: Optional[int] = Field(default=None, gt=0)
    auto_format_rules: Optional[str] = None


class StyleOut(StyleBase):
    id: UUID
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class AuditLogOut(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[UUID] = None
    details: Dict[str, Any] = {}
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AuditReportItem(BaseModel):
    action: str
    count: int
