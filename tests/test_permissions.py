import pytest

from apps.core.exceptions import AccessDenied
from apps.core.models import BoardMember, WorkspaceMember
from apps.core.permissions import Action, board_permissions
from apps.core.store import entity_store

from .conftest import add_cards

pytestmark = pytest.mark.django_db


def test_admin_is_allowed_everything(admin_user, board, todo):
    for action in Action:
        assert board_permissions.authorize(admin_user, board, action)
        assert board_permissions.authorize(admin_user, todo, action)


def test_workspace_member_reads_and_creates_but_cannot_restructure(member, board, todo):
    assert board_permissions.authorize(member, board, Action.READ)
    assert board_permissions.authorize(member, board, Action.CREATE)
    assert board_permissions.authorize(member, todo, Action.CREATE)

    for action in (Action.EDIT, Action.DELETE, Action.MANAGE_MEMBERS):
        assert not board_permissions.authorize(member, board, action)
    assert not board_permissions.authorize(member, todo, Action.REORDER)


def test_workspace_owner_may_restructure(owner, board, todo):
    assert board_permissions.authorize(owner, board, Action.DELETE)
    assert board_permissions.authorize(owner, todo, Action.REORDER)


def test_workspace_admin_role_may_restructure(member, workspace, board):
    WorkspaceMember.objects.filter(workspace=workspace, user=member).update(role=WorkspaceMember.Role.ADMIN)
    assert board_permissions.authorize(member, board, Action.EDIT)


def test_board_member_without_workspace_membership_has_board_access(outsider, board):
    assert not board_permissions.authorize(outsider, board, Action.READ)

    BoardMember.objects.create(board=board, user=outsider)
    assert board_permissions.authorize(outsider, board, Action.READ)
    assert not board_permissions.authorize(outsider, board.workspace, Action.READ)


@pytest.mark.parametrize('action', [
    Action.CREATE, Action.EDIT, Action.DELETE, Action.REORDER, Action.MANAGE_MEMBERS,
])
def test_outsider_is_denied_every_mutation(outsider, board, todo, action):
    decision = board_permissions.authorize(outsider, board, action)
    assert not decision
    assert decision.reason == f'access denied: board {board.pk}'
    assert not board_permissions.authorize(outsider, todo, action)


def test_outsider_is_denied_card_mutations(outsider, owner, todo):
    card = entity_store.load_card(add_cards(todo, owner, 'X')[0].pk)
    for action in (Action.READ, Action.EDIT, Action.MOVE, Action.DELETE, Action.ASSIGN):
        assert not board_permissions.authorize(outsider, card, action)


def test_removed_membership_revokes_access(member, workspace, board):
    WorkspaceMember.objects.get(workspace=workspace, user=member).soft_delete()
    assert not board_permissions.authorize(member, board, Action.READ)


def test_deactivated_principal_is_denied(admin_user, board):
    admin_user.is_deleted = True
    assert not board_permissions.authorize(admin_user, board, Action.READ)


def test_card_assignment_requires_manager_role(owner, member, todo):
    card = entity_store.load_card(add_cards(todo, member, 'X')[0].pk)
    assert board_permissions.authorize(member, card, Action.EDIT)
    assert not board_permissions.authorize(member, card, Action.ASSIGN)
    assert board_permissions.authorize(owner, card, Action.ASSIGN)


def test_require_raises_access_denied(outsider, board):
    with pytest.raises(AccessDenied) as excinfo:
        board_permissions.require(outsider, board, Action.EDIT)
    assert excinfo.value.kind == 'ACCESS_DENIED'


def test_require_admin(member, admin_user):
    board_permissions.require_admin(admin_user)
    with pytest.raises(AccessDenied):
        board_permissions.require_admin(member)
