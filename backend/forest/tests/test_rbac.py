import pytest
from fastapi import HTTPException

from forest import rbac
from forest.rbac import AccessContext, Permission, Role

P = Permission

EXPECTED = {
    Role.ADMIN: set(Permission),
    Role.SCENARIO_WRITER: {
        P.READ_TEXTS,
        P.WRITE_TEXTS,
        P.EDIT_ORIGINAL_TEXTS,
        P.MANAGE_CHARACTERS,
        P.MANAGE_STYLES,
        P.MANAGE_TAGS,
        P.MANAGE_PROPER_NOUNS,
        P.VIEW_EDIT_HISTORY,
    },
    Role.TRANSLATOR: {P.READ_TEXTS, P.TRANSLATE_TEXTS, P.VIEW_EDIT_HISTORY},
    Role.REVIEWER: {
        P.READ_TEXTS,
        P.TRANSLATE_TEXTS,
        P.REVIEW_TRANSLATIONS,
        P.VIEW_EDIT_HISTORY,
    },
}


def test_permission_vocabulary_is_closed():
    assert len(Permission) == 14
    assert len(Role) == 4


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("permission", list(Permission))
def test_has_permission_matches_table(role, permission):
    assert rbac.has_permission(role, permission) is (permission in EXPECTED[role])
    # plain strings resolve the same way as enum members
    assert rbac.has_permission(role.value, permission.value) is (permission in EXPECTED[role])


def test_unknown_role_or_permission_has_nothing():
    assert rbac.permissions_of("guest") == frozenset()
    assert rbac.permissions_of(None) == frozenset()
    assert rbac.has_permission("guest", P.READ_TEXTS) is False
    assert rbac.has_permission(Role.ADMIN, "launch_rockets") is False


def test_has_any_and_has_all():
    assert rbac.has_any(Role.TRANSLATOR, [P.MANAGE_USERS, P.TRANSLATE_TEXTS])
    assert not rbac.has_any(Role.TRANSLATOR, [P.MANAGE_USERS, P.ADMIN_ACCESS])
    assert rbac.has_all(Role.REVIEWER, [P.READ_TEXTS, P.REVIEW_TRANSLATIONS])
    assert not rbac.has_all(Role.REVIEWER, [P.READ_TEXTS, P.EDIT_ORIGINAL_TEXTS])
    assert rbac.has_all(Role.TRANSLATOR, [])


@pytest.mark.parametrize(
    "role,resource,allowed",
    [
        (Role.TRANSLATOR, "text-entries", True),
        (Role.TRANSLATOR, "text-editing", False),
        (Role.SCENARIO_WRITER, "text-editing", True),
        (Role.REVIEWER, "translation-review", True),
        (Role.TRANSLATOR, "translation-review", False),
        (Role.SCENARIO_WRITER, "forbidden-words", False),
        (Role.ADMIN, "forbidden-words", True),
        (Role.SCENARIO_WRITER, "file-operations", False),
        (Role.ADMIN, "admin-panel", True),
        (Role.REVIEWER, "user-management", False),
        (Role.ADMIN, "no-such-resource", False),
    ],
)
def test_can_access_resource(role, resource, allowed):
    assert rbac.can_access_resource(role, resource) is allowed


@pytest.mark.parametrize("role", list(Role))
def test_delete_is_admin_only(role):
    for kind in ("original", "translation"):
        assert rbac.validate_text_operation(role, "delete", kind) is (role is Role.ADMIN)


@pytest.mark.parametrize(
    "role,operation,kind,allowed",
    [
        (Role.TRANSLATOR, "read", "original", True),
        (Role.TRANSLATOR, "create", "original", False),
        (Role.TRANSLATOR, "update", "original", False),
        (Role.TRANSLATOR, "create", "translation", True),
        (Role.TRANSLATOR, "update", "translation", True),
        (Role.SCENARIO_WRITER, "create", "original", True),
        (Role.SCENARIO_WRITER, "update", "original", True),
        (Role.SCENARIO_WRITER, "create", "translation", False),
        (Role.SCENARIO_WRITER, "update", "translation", False),
        (Role.REVIEWER, "update", "translation", True),
        (Role.REVIEWER, "update", "original", False),
        (Role.ADMIN, "update", "original", True),
        (Role.ADMIN, "archive", "original", False),
        (Role.ADMIN, "update", "subtitle", False),
    ],
)
def test_validate_text_operation(role, operation, kind, allowed):
    assert rbac.validate_text_operation(role, operation, kind) is allowed


def test_role_ranks_are_a_total_order():
    ranks = [rbac.role_rank(role) for role in (Role.TRANSLATOR, Role.SCENARIO_WRITER, Role.REVIEWER, Role.ADMIN)]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == 4
    assert rbac.role_rank("guest") == 0


@pytest.mark.parametrize("actor", list(Role))
@pytest.mark.parametrize("target", list(Role))
def test_can_modify_user_role(actor, target):
    expected = actor is Role.ADMIN and target is not Role.ADMIN
    assert rbac.can_modify_user_role(actor, target) is expected


def test_peers_never_modify_each_other():
    assert rbac.can_modify_user_role(Role.ADMIN, Role.ADMIN) is False
    for target in Role:
        assert rbac.can_modify_user_role(Role.TRANSLATOR, target) is False


def test_owner_exception():
    context = AccessContext(role=Role.TRANSLATOR, user_id=5, resource_owner_id=5)
    assert rbac.check_access(context, P.MANAGE_USERS, allow_owner_access=True) is True
    assert rbac.check_access(context, P.MANAGE_USERS) is False


def test_owner_exception_needs_matching_owner():
    other = AccessContext(role=Role.TRANSLATOR, user_id=5, resource_owner_id=6)
    unowned = AccessContext(role=Role.TRANSLATOR, user_id=None, resource_owner_id=None)
    assert rbac.check_access(other, P.MANAGE_USERS, allow_owner_access=True) is False
    assert rbac.check_access(unowned, P.MANAGE_USERS, allow_owner_access=True) is False


def test_role_permission_wins_without_owner():
    context = AccessContext(role=Role.ADMIN, user_id=1)
    assert rbac.check_access(context, P.MANAGE_USERS) is True


class _Caller:
    def __init__(self, role):
        self.role = role


def test_require_helpers_raise_forbidden():
    with pytest.raises(HTTPException) as exc:
        rbac.require_permission(_Caller("translator"), P.MANAGE_USERS)
    assert exc.value.status_code == 403
    with pytest.raises(HTTPException):
        rbac.require_text_operation(_Caller("reviewer"), "update", "original")
    with pytest.raises(HTTPException):
        rbac.require_resource(_Caller("scenario_writer"), "file-operations")
    rbac.require_text_operation(_Caller("reviewer"), "update", "translation")
