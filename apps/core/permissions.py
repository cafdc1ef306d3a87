# apps/core/permissions.py

"""
Access Gate - sistema de permissões do Kanban

Regras avaliadas em ordem, a primeira que casar vence:
1. Admin global pode tudo
2. Membro ativo do board tem acesso ao board
3. Membro ativo do workspace tem acesso aos boards do workspace
4. Criador ou responsável pelo card também pode editar/mover/remover o card
5. Mudanças estruturais (renomear, remover, reordenar listas/boards)
   exigem papel OWNER/ADMIN no workspace
6. Caso contrário: negado

A avaliação não tem efeito colateral. Deny é um resultado normal;
`require` converte em AccessDenied para quem quer exceção.
"""

import enum
import logging
from dataclasses import dataclass

from .exceptions import AccessDenied
from .models import Board, BoardList, Card, User, Workspace
from .store import RESOURCE_NAMES, entity_store

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    READ = 'read'
    CREATE = 'create'  # criar filho: board no workspace, lista no board, card na lista
    EDIT = 'edit'
    DELETE = 'delete'
    REORDER = 'reorder'
    MOVE = 'move'
    ASSIGN = 'assign'
    MANAGE_MEMBERS = 'manage_members'


STRUCTURAL_ACTIONS = {Action.EDIT, Action.DELETE, Action.REORDER, Action.MANAGE_MEMBERS}
CARD_OWNER_ACTIONS = {Action.EDIT, Action.DELETE, Action.MOVE}


@dataclass(frozen=True)
class AccessDecision:
    """Allow | Deny(reason)"""

    allowed: bool
    reason: str = ''

    def __bool__(self):
        return self.allowed


ALLOW = AccessDecision(True)


def deny(resource) -> AccessDecision:
    name = RESOURCE_NAMES.get(type(resource), type(resource).__name__.lower())
    return AccessDecision(False, f"access denied: {name} {resource.pk}")


class BoardPermissions:
    """
    Avaliador de permissões

    Espera recursos já resolvidos pelo EntityStore (board.workspace,
    card.board_list.board, card.assignees pré-carregados).
    """

    def __init__(self, store=None):
        self._store = store or entity_store

    # =================== CONTRATO PRINCIPAL ===================

    def authorize(self, principal: User, resource, action: Action) -> AccessDecision:
        """Avalia `action` de `principal` sobre `resource`"""
        if not self.is_active(principal):
            return deny(resource)

        # Regra 1: admin global
        if principal.is_admin:
            return ALLOW

        if isinstance(resource, Workspace):
            allowed = self._authorize_workspace(principal, resource, action)
        elif isinstance(resource, Board):
            allowed = self._authorize_board(principal, resource, action)
        elif isinstance(resource, BoardList):
            allowed = self._authorize_list(principal, resource, action)
        elif isinstance(resource, Card):
            allowed = self._authorize_card(principal, resource, action)
        else:
            allowed = False

        return ALLOW if allowed else deny(resource)

    def require(self, principal: User, resource, action: Action) -> None:
        """Como authorize, mas levanta AccessDenied (e registra para auditoria)"""
        decision = self.authorize(principal, resource, action)
        if not decision:
            logger.warning(
                f"⛔ Acesso negado - {getattr(principal, 'username', None)} "
                f"{action.value} {decision.reason}"
            )
            raise AccessDenied(decision.reason)

    def require_admin(self, principal: User) -> None:
        """Operações reservadas ao administrador global"""
        if not (self.is_active(principal) and principal.is_admin):
            logger.warning(f"⛔ Acesso negado - {getattr(principal, 'username', None)} requer ADMIN")
            raise AccessDenied("access denied: admin role required")

    # =================== VERIFICAÇÕES BÁSICAS ===================

    @staticmethod
    def is_active(principal) -> bool:
        return principal is not None and principal.pk is not None and not principal.is_deleted

    def has_workspace_access(self, principal: User, workspace: Workspace) -> bool:
        """Regra 3: membro ativo do workspace"""
        if principal.is_admin:
            return True
        if workspace.is_deleted:
            return False
        return self._store.workspace_membership(workspace.pk, principal.pk) is not None

    def has_board_access(self, principal: User, board: Board) -> bool:
        """Regra 2 com fallback para a regra 3"""
        if principal.is_admin:
            return True
        if board.is_deleted:
            return False
        if self._store.is_board_member(board.pk, principal.pk):
            return True
        return self.has_workspace_access(principal, board.workspace)

    def can_manage_workspace(self, principal: User, workspace: Workspace) -> bool:
        """Regra 5: dono do workspace ou membro OWNER/ADMIN"""
        if principal.is_admin:
            return True
        if workspace.is_deleted:
            return False
        if workspace.owner_id == principal.pk:
            return True
        membership = self._store.workspace_membership(workspace.pk, principal.pk)
        return membership is not None and membership.can_manage

    @staticmethod
    def is_card_owner(principal: User, card: Card) -> bool:
        """Regra 4: criador ou um dos responsáveis"""
        if card.created_by_id == principal.pk:
            return True
        return any(user.pk == principal.pk for user in card.assignees.all())

    # =================== REGRAS POR RECURSO ===================

    def _authorize_workspace(self, principal, workspace, action):
        if action in (Action.READ, Action.CREATE):
            return self.has_workspace_access(principal, workspace)
        if action in STRUCTURAL_ACTIONS:
            return self.can_manage_workspace(principal, workspace)
        return False

    def _authorize_board(self, principal, board, action):
        if action in (Action.READ, Action.CREATE):
            return self.has_board_access(principal, board)
        if action in STRUCTURAL_ACTIONS:
            return not board.is_deleted and self.can_manage_workspace(principal, board.workspace)
        return False

    def _authorize_list(self, principal, board_list, action):
        board = board_list.board
        if action in (Action.READ, Action.CREATE):
            return self.has_board_access(principal, board)
        if action in STRUCTURAL_ACTIONS:
            return not board.is_deleted and self.can_manage_workspace(principal, board.workspace)
        return False

    def _authorize_card(self, principal, card, action):
        board = card.board_list.board
        if action == Action.READ:
            return self.has_board_access(principal, board)
        if action in CARD_OWNER_ACTIONS:
            return self.has_board_access(principal, board) or self.is_card_owner(principal, card)
        if action == Action.ASSIGN:
            return self.can_manage_workspace(principal, board.workspace)
        return False


# Instância global
board_permissions = BoardPermissions()
