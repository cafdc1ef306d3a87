import pytest

from apps.core.admin_service import admin_service
from apps.core.exceptions import AccessDenied, InvalidRequest, NotFound
from apps.core.models import Board, BoardMember, User, Workspace, WorkspaceMember

pytestmark = pytest.mark.django_db


# === WORKSPACES ===

def test_only_admin_creates_workspace(workspaces, admin_user, owner):
    with pytest.raises(AccessDenied):
        workspaces.create_workspace(owner, 'Design')

    data = workspaces.create_workspace(admin_user, 'Design', 'UI team')

    assert data['name'] == 'Design'
    assert data['ownerId'] == admin_user.pk
    membership = WorkspaceMember.objects.get(workspace_id=data['id'], user=admin_user)
    assert membership.role == WorkspaceMember.Role.OWNER


def test_list_workspaces_shows_only_memberships(workspaces, admin_user, member, outsider, workspace):
    Workspace.objects.create(name='Hidden', owner=admin_user)

    assert [ws['name'] for ws in workspaces.list_workspaces(member)] == ['Engineering']
    assert workspaces.list_workspaces(outsider) == []
    assert [ws['name'] for ws in workspaces.list_workspaces(admin_user)] == ['Engineering', 'Hidden']


def test_update_workspace_requires_manager(workspaces, member, owner, workspace):
    with pytest.raises(AccessDenied):
        workspaces.update_workspace(member, workspace.pk, name='Mine')

    assert workspaces.update_workspace(owner, workspace.pk, name='Platform')['name'] == 'Platform'


def test_delete_workspace_removes_boards_and_broadcasts(workspaces, owner, workspace, board, channel_layer,
                                                        django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        workspaces.delete_workspace(owner, workspace.pk)

    assert Workspace.all_objects.get(pk=workspace.pk).is_deleted
    assert Board.all_objects.get(pk=board.pk).is_deleted

    messages = channel_layer.messages('boards')
    assert [(m['type'], m['boardId']) for m in messages] == [('BOARD_DELETED', board.pk)]


# === MEMBROS ===

def test_assign_member_and_revive(workspaces, owner, outsider, workspace):
    data = workspaces.assign_member(owner, workspace.pk, outsider.pk)
    assert data['role'] == 'MEMBER'
    assert data['userId'] == outsider.pk

    workspaces.remove_member(owner, workspace.pk, outsider.pk)
    assert not WorkspaceMember.objects.filter(workspace=workspace, user=outsider).exists()

    revived = workspaces.assign_member(owner, workspace.pk, outsider.pk, 'ADMIN')
    assert revived['id'] == data['id']
    assert revived['role'] == 'ADMIN'
    assert WorkspaceMember.all_objects.filter(workspace=workspace, user=outsider).count() == 1


def test_assign_member_changes_role(workspaces, owner, member, workspace):
    workspaces.assign_member(owner, workspace.pk, member.pk, 'ADMIN')
    assert WorkspaceMember.objects.get(workspace=workspace, user=member).role == 'ADMIN'


def test_member_cannot_manage_members(workspaces, member, outsider, workspace):
    with pytest.raises(AccessDenied):
        workspaces.assign_member(member, workspace.pk, outsider.pk)


def test_owner_cannot_be_removed(workspaces, admin_user, owner, workspace):
    with pytest.raises(InvalidRequest):
        workspaces.remove_member(admin_user, workspace.pk, owner.pk)


def test_remove_unknown_member(workspaces, owner, outsider, workspace):
    with pytest.raises(InvalidRequest):
        workspaces.remove_member(owner, workspace.pk, outsider.pk)


def test_list_members(workspaces, member, workspace):
    names = [m['userName'] for m in workspaces.list_members(member, workspace.pk)]
    assert names == ['Olivia Owner', 'Mark']


def test_board_members(workspaces, owner, member, outsider, board):
    data = workspaces.add_board_member(owner, board.pk, outsider.pk)
    assert data['username'] == 'eve'
    # adicionar de novo não duplica
    workspaces.add_board_member(owner, board.pk, outsider.pk)
    assert BoardMember.objects.filter(board=board, user=outsider).count() == 1

    assert [m['userId'] for m in workspaces.list_board_members(outsider, board.pk)] == [outsider.pk]

    with pytest.raises(AccessDenied):
        workspaces.remove_board_member(member, board.pk, outsider.pk)

    workspaces.remove_board_member(owner, board.pk, outsider.pk)
    with pytest.raises(AccessDenied):
        workspaces.list_board_members(outsider, board.pk)


def test_add_unknown_user_to_board(workspaces, owner, board):
    with pytest.raises(NotFound):
        workspaces.add_board_member(owner, board.pk, 999999)


# === ADMINISTRAÇÃO ===

def test_statistics(admin_user, member, board):
    stats = admin_service.statistics(admin_user)
    assert stats['totalBoards'] == 1
    assert stats['totalWorkspaces'] == 1
    assert stats['totalUsers'] == stats['activeUsers']

    with pytest.raises(AccessDenied):
        admin_service.statistics(member)


def test_update_role(admin_user, member):
    assert admin_service.update_role(admin_user, member.pk, 'ADMIN')['role'] == 'ADMIN'
    member.refresh_from_db()
    assert member.is_admin

    with pytest.raises(InvalidRequest):
        admin_service.update_role(admin_user, member.pk, 'SUPERUSER')


def test_toggle_status(admin_user, member):
    data = admin_service.toggle_status(admin_user, member.pk)
    assert data['isDeleted'] is True
    assert not User.objects.filter(pk=member.pk).exists()

    data = admin_service.toggle_status(admin_user, member.pk)
    assert data['isDeleted'] is False

    with pytest.raises(InvalidRequest):
        admin_service.toggle_status(admin_user, admin_user.pk)


def test_list_users_includes_deactivated(admin_user, member):
    admin_service.toggle_status(admin_user, member.pk)
    usernames = [user['username'] for user in admin_service.list_users(admin_user)]
    assert usernames == ['mark', 'root']


def test_toggle_unknown_user(admin_user):
    with pytest.raises(NotFound):
        admin_service.toggle_status(admin_user, 999999)
