# apps/core/workspace_service.py

"""
Serviço de Workspaces - workspaces, membros de workspace e membros de board

Segue o mesmo contrato do Mutation Coordinator: principal explícito,
checagem no Access Gate antes de qualquer escrita e eventos publicados
somente depois do commit.
"""

import logging
from typing import List

from django.db import DatabaseError, transaction

from apps.board.dispatcher import BoardEvent, EventType, change_dispatcher

from .exceptions import InvalidRequest, KanbanError, StoreFailure
from .models import BoardMember, Workspace, WorkspaceMember
from .permissions import Action, board_permissions
from .serializers import (
    board_member_to_dict, user_to_dict, workspace_member_to_dict, workspace_to_dict
)
from .store import entity_store
from .utils import format_user_name

logger = logging.getLogger(__name__)


class WorkspaceService:
    """Operações de workspace e de vínculo de usuários"""

    def __init__(self, store=None, permissions=None, dispatcher=None):
        self._store = store or entity_store
        self._permissions = permissions or board_permissions
        self._dispatcher = dispatcher or change_dispatcher

    def _atomic(self, operation, *args):
        try:
            with transaction.atomic():
                return operation(*args)
        except KanbanError:
            raise
        except DatabaseError as exc:
            logger.error(f"❌ Falha de persistência em {operation.__name__}: {exc}")
            raise StoreFailure('storage unavailable') from exc

    # =================== WORKSPACES ===================

    def list_workspaces(self, principal) -> List[dict]:
        return [workspace_to_dict(ws) for ws in self._store.workspaces_for(principal)]

    def create_workspace(self, principal, name, description='') -> dict:
        """Somente ADMIN global; o criador vira dono e membro OWNER"""
        self._permissions.require_admin(principal)
        return self._atomic(self._create_workspace, principal, name, description)

    def _create_workspace(self, principal, name, description):
        workspace = Workspace.objects.create(
            name=name,
            description=description or '',
            owner=principal,
        )
        WorkspaceMember.objects.create(
            workspace=workspace,
            user=principal,
            role=WorkspaceMember.Role.OWNER,
        )
        logger.info(f"✅ Workspace {workspace.pk} criado por {principal.username}")
        return workspace_to_dict(workspace)

    def update_workspace(self, principal, workspace_id, name=None, description=None) -> dict:
        return self._atomic(self._update_workspace, principal, workspace_id, name, description)

    def _update_workspace(self, principal, workspace_id, name, description):
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.EDIT)

        if name is not None:
            workspace.name = name
        if description is not None:
            workspace.description = description
        self._store.save(workspace)
        return workspace_to_dict(workspace)

    def delete_workspace(self, principal, workspace_id) -> None:
        self._atomic(self._delete_workspace, principal, workspace_id)

    def _delete_workspace(self, principal, workspace_id):
        """Remove o workspace e todos os seus boards (BOARD_DELETED para cada)"""
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.DELETE)

        boards = self._store.boards_in_workspace(workspace.pk)
        for board in boards:
            board.soft_delete()
            self._dispatcher.publish_on_commit(BoardEvent(
                type=EventType.BOARD_DELETED,
                board_id=board.pk,
                actor_id=principal.pk,
                actor_name=format_user_name(principal),
            ))

        workspace.soft_delete()
        logger.info(
            f"🗑️  Workspace {workspace.pk} removido por {principal.username} "
            f"({len(boards)} boards)"
        )

    # =================== MEMBROS DO WORKSPACE ===================

    def list_members(self, principal, workspace_id) -> List[dict]:
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.READ)
        return [workspace_member_to_dict(m) for m in self._store.workspace_members(workspace.pk)]

    def assign_member(self, principal, workspace_id, user_id, role=None) -> dict:
        return self._atomic(self._assign_member, principal, workspace_id, user_id, role)

    def _assign_member(self, principal, workspace_id, user_id, role):
        """Cria o vínculo, reativa um vínculo removido ou troca o papel"""
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.MANAGE_MEMBERS)
        user = self._store.find_user(user_id)

        member = (
            WorkspaceMember.all_objects
            .filter(workspace=workspace, user=user)
            .order_by('is_deleted', '-pk')
            .first()
        )
        if member is None:
            member = WorkspaceMember(workspace=workspace, user=user)
        member.role = role or member.role or WorkspaceMember.Role.MEMBER
        member.is_deleted = False
        self._store.save(member)

        logger.info(f"👥 {user.username} vinculado ao workspace {workspace.pk} como {member.role}")
        return workspace_member_to_dict(member)

    def remove_member(self, principal, workspace_id, user_id) -> None:
        self._atomic(self._remove_member, principal, workspace_id, user_id)

    def _remove_member(self, principal, workspace_id, user_id):
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.MANAGE_MEMBERS)

        if workspace.owner_id == int(user_id):
            raise InvalidRequest('the workspace owner cannot be removed')

        member = self._store.workspace_membership(workspace.pk, user_id)
        if member is None:
            raise InvalidRequest(f"user {user_id} is not a member of workspace {workspace.pk}")
        member.soft_delete()

    # =================== MEMBROS DO BOARD ===================

    def list_board_members(self, principal, board_id) -> List[dict]:
        board = self._store.load_board(board_id)
        self._permissions.require(principal, board, Action.READ)
        return [board_member_to_dict(m) for m in self._store.board_members(board.pk)]

    def board_users(self, principal, board_id) -> List[dict]:
        """Usuários ativos que são membros do workspace do board"""
        board = self._store.load_board(board_id)
        self._permissions.require(principal, board, Action.READ)
        return [
            user_to_dict(m.user)
            for m in self._store.workspace_members(board.workspace_id)
            if not m.user.is_deleted
        ]

    def add_board_member(self, principal, board_id, user_id) -> dict:
        return self._atomic(self._add_board_member, principal, board_id, user_id)

    def _add_board_member(self, principal, board_id, user_id):
        board = self._store.load_board(board_id)
        self._permissions.require(principal, board, Action.MANAGE_MEMBERS)
        user = self._store.find_user(user_id)

        member = self._store.board_membership(board.pk, user.pk)
        if member is None:
            member = BoardMember.objects.create(board=board, user=user)
            logger.info(f"👥 {user.username} adicionado ao board {board.pk}")
        return board_member_to_dict(member)

    def remove_board_member(self, principal, board_id, user_id) -> None:
        self._atomic(self._remove_board_member, principal, board_id, user_id)

    def _remove_board_member(self, principal, board_id, user_id):
        board = self._store.load_board(board_id)
        self._permissions.require(principal, board, Action.MANAGE_MEMBERS)

        member = self._store.board_membership(board.pk, user_id)
        if member is None:
            raise InvalidRequest(f"user {user_id} is not a member of board {board.pk}")
        member.soft_delete()


# Instância global
workspace_service = WorkspaceService()
