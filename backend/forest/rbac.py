from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Iterable, Literal

from fastapi import HTTPException

# purpose: role/permission registry and the access decisions built on it
# status: active
# inputs: role names (enum or plain string), permission tags, resource kinds
# outputs: booleans only; HTTP translation lives in require_* helpers below


class Role(str, Enum):
    ADMIN = "admin"
    SCENARIO_WRITER = "scenario_writer"
    TRANSLATOR = "translator"
    REVIEWER = "reviewer"


class Permission(str, Enum):
    READ_TEXTS = "read_texts"
    WRITE_TEXTS = "write_texts"
    EDIT_ORIGINAL_TEXTS = "edit_original_texts"
    TRANSLATE_TEXTS = "translate_texts"
    REVIEW_TRANSLATIONS = "review_translations"
    MANAGE_CHARACTERS = "manage_characters"
    MANAGE_STYLES = "manage_styles"
    MANAGE_TAGS = "manage_tags"
    MANAGE_FORBIDDEN_WORDS = "manage_forbidden_words"
    MANAGE_PROPER_NOUNS = "manage_proper_nouns"
    IMPORT_EXPORT_FILES = "import_export_files"
    VIEW_EDIT_HISTORY = "view_edit_history"
    MANAGE_USERS = "manage_users"
    ADMIN_ACCESS = "admin_access"


TextOperation = Literal["read", "create", "update", "delete"]
TextKind = Literal["original", "translation"]

_ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.SCENARIO_WRITER: frozenset(
        {
            Permission.READ_TEXTS,
            Permission.WRITE_TEXTS,
            Permission.EDIT_ORIGINAL_TEXTS,
            Permission.MANAGE_CHARACTERS,
            Permission.MANAGE_STYLES,
            Permission.MANAGE_TAGS,
            Permission.MANAGE_PROPER_NOUNS,
            Permission.VIEW_EDIT_HISTORY,
        }
    ),
    Role.TRANSLATOR: frozenset(
        {
            Permission.READ_TEXTS,
            Permission.TRANSLATE_TEXTS,
            Permission.VIEW_EDIT_HISTORY,
        }
    ),
    Role.REVIEWER: frozenset(
        {
            Permission.READ_TEXTS,
            Permission.TRANSLATE_TEXTS,
            Permission.REVIEW_TRANSLATIONS,
            Permission.VIEW_EDIT_HISTORY,
        }
    ),
}

# only consulted for user management, never for content permissions
_ROLE_RANKS: dict[Role, int] = {
    Role.ADMIN: 4,
    Role.REVIEWER: 3,
    Role.SCENARIO_WRITER: 2,
    Role.TRANSLATOR: 1,
}

_RESOURCE_PERMISSIONS: dict[str, tuple[Permission, ...]] = {
    "text-entries": (Permission.READ_TEXTS,),
    "text-editing": (Permission.WRITE_TEXTS, Permission.EDIT_ORIGINAL_TEXTS),
    "translations": (Permission.TRANSLATE_TEXTS,),
    "translation-review": (Permission.REVIEW_TRANSLATIONS,),
    "characters": (Permission.MANAGE_CHARACTERS,),
    "styles": (Permission.MANAGE_STYLES,),
    "tags": (Permission.MANAGE_TAGS,),
    "forbidden-words": (Permission.MANAGE_FORBIDDEN_WORDS,),
    "proper-nouns": (Permission.MANAGE_PROPER_NOUNS,),
    "file-operations": (Permission.IMPORT_EXPORT_FILES,),
    "edit-history": (Permission.VIEW_EDIT_HISTORY,),
    "user-management": (Permission.MANAGE_USERS,),
    "admin-panel": (Permission.ADMIN_ACCESS,),
}


def coerce_role(value: Role | str | None) -> Role | None:
    """Return the matching ``Role`` or ``None`` for anything unrecognised."""

    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def _coerce_permission(value: Permission | str) -> Permission | None:
    if isinstance(value, Permission):
        return value
    try:
        return Permission(value)
    except ValueError:
        return None


def permissions_of(role: Role | str | None) -> frozenset[Permission]:
    """Return the fixed permission set of ``role``; unknown roles get nothing."""

    resolved = coerce_role(role)
    if resolved is None:
        return frozenset()
    return _ROLE_PERMISSIONS[resolved]


def role_rank(role: Role | str | None) -> int:
    resolved = coerce_role(role)
    return _ROLE_RANKS[resolved] if resolved is not None else 0


def has_permission(role: Role | str | None, permission: Permission | str) -> bool:
    resolved = _coerce_permission(permission)
    return resolved is not None and resolved in permissions_of(role)


def has_any(role: Role | str | None, permissions: Iterable[Permission | str]) -> bool:
    return any(has_permission(role, permission) for permission in permissions)


def has_all(role: Role | str | None, permissions: Iterable[Permission | str]) -> bool:
    return all(has_permission(role, permission) for permission in permissions)


def can_access_resource(role: Role | str | None, resource_kind: str) -> bool:
    required = _RESOURCE_PERMISSIONS.get(resource_kind)
    if not required:
        return False
    return has_any(role, required)


def validate_text_operation(
    role: Role | str | None,
    operation: TextOperation | str,
    text_kind: TextKind | str,
) -> bool:
    """Decide whether ``role`` may perform ``operation`` on original or translated text."""

    if operation == "read":
        return has_permission(role, Permission.READ_TEXTS)
    if operation == "delete":
        return has_permission(role, Permission.ADMIN_ACCESS)
    if operation not in ("create", "update"):
        return False
    if text_kind == "original":
        return has_permission(role, Permission.EDIT_ORIGINAL_TEXTS)
    if text_kind != "translation":
        return False
    if operation == "create":
        return has_permission(role, Permission.TRANSLATE_TEXTS)
    return has_any(role, (Permission.TRANSLATE_TEXTS, Permission.REVIEW_TRANSLATIONS))


def can_modify_user_role(actor_role: Role | str | None, target_role: Role | str | None) -> bool:
    """True iff the actor manages users and strictly outranks the target."""

    if not has_permission(actor_role, Permission.MANAGE_USERS):
        return False
    return role_rank(actor_role) > role_rank(target_role)


@dataclass(frozen=True)
class AccessContext:
    """Who is asking, and who owns the resource being asked about."""

    role: Role | str | None
    user_id: Hashable
    resource_owner_id: Hashable | None = None


def check_access(
    context: AccessContext,
    permission: Permission | str,
    allow_owner_access: bool = False,
) -> bool:
    if has_permission(context.role, permission):
        return True
    return (
        allow_owner_access
        and context.resource_owner_id is not None
        and context.user_id == context.resource_owner_id
    )


def require_permission(user, permission: Permission | str) -> None:
    if not has_permission(user.role, permission):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


def require_resource(user, resource_kind: str) -> None:
    if not can_access_resource(user.role, resource_kind):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


def require_text_operation(user, operation: TextOperation, text_kind: TextKind) -> None:
    if not validate_text_operation(user.role, operation, text_kind):
        raise HTTPException(status_code=403, detail=f"Not authorized to {operation} {text_kind} text")
