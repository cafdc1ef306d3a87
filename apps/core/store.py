# apps/core/store.py

"""
Entity Store - fronteira de persistência do Kanban

Toda leitura passa pelo manager padrão (tombstone aplicado) e devolve
modelos já resolvidos (select_related/prefetch_related). Quem chama nunca
precisa tratar falha de lazy loading: ou o objeto vem completo, ou sai
um NotFound.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from django.db.models import Prefetch

from .exceptions import NotFound
from .models import (
    Board, BoardList, BoardMember, Card, User, Workspace, WorkspaceMember
)

logger = logging.getLogger(__name__)

# Nome do recurso usado em mensagens de erro
RESOURCE_NAMES = {
    User: 'user',
    Workspace: 'workspace',
    WorkspaceMember: 'workspace member',
    Board: 'board',
    BoardMember: 'board member',
    BoardList: 'list',
    Card: 'card',
}


class EntityStore:
    """
    Acesso encapsulado às entidades

    Os métodos `lock_*` só fazem sentido dentro de transaction.atomic():
    as linhas ficam travadas (SELECT ... FOR UPDATE) até o commit.
    """

    # =================== OPERAÇÕES GENÉRICAS ===================

    def find_by_id(self, model, pk, queryset=None):
        """Busca por id ignorando registros com soft delete"""
        qs = queryset if queryset is not None else model.objects.all()
        try:
            return qs.get(pk=pk)
        except model.DoesNotExist:
            raise NotFound.for_resource(RESOURCE_NAMES.get(model, model.__name__.lower()), pk)

    def find_by_parent(self, model, parent_field: str, parent_id) -> List:
        """Filhos ativos de um pai, na ordenação padrão do modelo"""
        return list(model.objects.filter(**{f'{parent_field}_id': parent_id}))

    def save(self, instance, update_fields: Optional[Sequence[str]] = None):
        instance.save(update_fields=update_fields)
        return instance

    def save_all(self, instances: Iterable, fields: Sequence[str]) -> int:
        """
        Grava várias linhas de uma vez (bulk_update)

        Deve ser chamado dentro de transaction.atomic() para que a
        reindexação seja aplicada inteira ou não seja aplicada.
        """
        instances = list(instances)
        if not instances:
            return 0
        model = type(instances[0])
        return model.all_objects.bulk_update(instances, list(fields))

    # =================== USUÁRIOS E MEMBROS ===================

    def find_user(self, user_id) -> User:
        return self.find_by_id(User, user_id)

    def find_users(self, user_ids: Iterable) -> List[User]:
        """Usuários ativos com os ids pedidos; ids desconhecidos são ignorados"""
        return list(User.objects.filter(pk__in=set(user_ids)))

    def workspace_membership(self, workspace_id, user_id) -> Optional[WorkspaceMember]:
        return (
            WorkspaceMember.objects
            .filter(workspace_id=workspace_id, user_id=user_id)
            .first()
        )

    def board_membership(self, board_id, user_id) -> Optional[BoardMember]:
        return BoardMember.objects.filter(board_id=board_id, user_id=user_id).first()

    def is_board_member(self, board_id, user_id) -> bool:
        return BoardMember.objects.filter(board_id=board_id, user_id=user_id).exists()

    def workspace_members(self, workspace_id) -> List[WorkspaceMember]:
        return list(
            WorkspaceMember.objects
            .filter(workspace_id=workspace_id)
            .select_related('user')
            .order_by('created_at', 'pk')
        )

    def board_members(self, board_id) -> List[BoardMember]:
        return list(
            BoardMember.objects
            .filter(board_id=board_id)
            .select_related('user')
            .order_by('created_at', 'pk')
        )

    # =================== WORKSPACES E BOARDS ===================

    def load_workspace(self, workspace_id) -> Workspace:
        return self.find_by_id(
            Workspace, workspace_id, Workspace.objects.select_related('owner')
        )

    def workspaces_for(self, user: User) -> List[Workspace]:
        """Admin vê todos; os demais, apenas onde são membros ativos"""
        qs = Workspace.objects.select_related('owner')
        if not user.is_admin:
            qs = qs.filter(
                members__user=user,
                members__is_deleted=False,
            ).distinct()
        return list(qs)

    def load_board(self, board_id, for_update: bool = False) -> Board:
        """
        Board com workspace resolvido

        Um board cujo workspace sofreu soft delete também é tratado como
        inexistente.
        """
        qs = Board.objects.select_related('workspace', 'workspace__owner', 'created_by')
        if for_update:
            qs = qs.select_for_update(of=('self',))
        board = self.find_by_id(Board, board_id, qs)
        if board.workspace.is_deleted:
            raise NotFound.for_resource('board', board_id)
        return board

    def boards_in_workspace(self, workspace_id) -> List[Board]:
        return list(
            Board.objects
            .filter(workspace_id=workspace_id)
            .select_related('workspace', 'created_by')
        )

    def board_snapshot(self, board_id) -> Board:
        """
        Board completo para projeção: listas ativas em ordem e, em cada uma,
        cards ativos em ordem com autores e responsáveis carregados
        """
        cards = (
            Card.objects
            .select_related('created_by', 'last_modified_by')
            .prefetch_related('assignees')
            .order_by('position', 'id')
        )
        lists = (
            BoardList.objects
            .prefetch_related(Prefetch('cards', queryset=cards))
            .order_by('position', 'id')
        )
        qs = (
            Board.objects
            .select_related('workspace', 'created_by')
            .prefetch_related(Prefetch('lists', queryset=lists))
        )
        return self.find_by_id(Board, board_id, qs)

    # =================== LISTAS ===================

    def load_list(self, list_id) -> BoardList:
        """Lista com board e workspace resolvidos (o board pode estar removido)"""
        qs = BoardList.objects.select_related('board', 'board__workspace')
        return self.find_by_id(BoardList, list_id, qs)

    def load_list_with_cards(self, list_id) -> BoardList:
        cards = (
            Card.objects
            .select_related('created_by', 'last_modified_by')
            .prefetch_related('assignees')
            .order_by('position', 'id')
        )
        qs = (
            BoardList.objects
            .select_related('board')
            .prefetch_related(Prefetch('cards', queryset=cards))
        )
        return self.find_by_id(BoardList, list_id, qs)

    def list_sequence(self, board_id) -> List[BoardList]:
        """Listas ativas do board em ordem de posição"""
        return list(BoardList.objects.filter(board_id=board_id).order_by('position', 'id'))

    def lock_lists(self, list_ids: Iterable) -> Dict[int, BoardList]:
        """
        Trava as listas em ordem crescente de id

        A ordem fixa evita deadlock entre dois moves cruzados A->B e B->A.
        """
        ids = sorted(set(list_ids))
        rows = (
            BoardList.objects
            .select_for_update(of=('self',))
            .filter(pk__in=ids)
            .order_by('pk')
        )
        return {row.pk: row for row in rows}

    # =================== CARDS ===================

    def load_card(self, card_id) -> Card:
        """Card com lista, board, workspace, autor e responsáveis carregados"""
        qs = (
            Card.objects
            .select_related(
                'board_list', 'board_list__board', 'board_list__board__workspace',
                'created_by', 'last_modified_by',
            )
            .prefetch_related('assignees')
        )
        return self.find_by_id(Card, card_id, qs)

    def card_sequence(self, list_id) -> List[Card]:
        """Cards ativos da lista em ordem de posição"""
        return list(Card.objects.filter(board_list_id=list_id).order_by('position', 'id'))

    # =================== ESTATÍSTICAS ===================

    def statistics(self) -> Dict[str, int]:
        return {
            'totalUsers': User.all_objects.count(),
            'activeUsers': User.objects.count(),
            'totalWorkspaces': Workspace.objects.count(),
            'totalBoards': Board.objects.count(),
            'totalCards': Card.objects.count(),
        }


# Instância global do store (mesmo padrão do auth_service)
entity_store = EntityStore()
