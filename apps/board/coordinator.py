# apps/board/coordinator.py

"""
Mutation Coordinator - orquestra cada mutação do Kanban

Fluxo de toda escrita, dentro de uma única transaction.atomic():
    Access Gate -> Entity Store (leitura com lock) -> Position Engine
    -> Entity Store (gravação) -> Change Dispatcher (on_commit)

Serialização:
- reindexar listas de um board trava a linha do Board
- reindexar cards trava as linhas das listas envolvidas (ordem crescente de id)

Conflitos de lock detectados pelo banco (e estado alterado por outra
requisição entre a leitura e o lock) viram ConflictError e a operação
inteira é repetida até KANBAN_CONFLICT_RETRIES vezes.
"""

import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction
from django.utils import timezone

from apps.core.exceptions import ConflictError, InvalidRequest, NotFound, StoreFailure
from apps.core.models import Board, BoardList, Card
from apps.core.permissions import Action, board_permissions
from apps.core.serializers import board_to_dict, card_to_dict, list_to_dict
from apps.core.store import entity_store
from apps.core.utils import format_user_name

from . import positions
from .dispatcher import BoardEvent, EventType, change_dispatcher

logger = logging.getLogger(__name__)

# Chave provisória do item novo dentro do Position Engine
_NEW = 'new'

# Códigos SQLSTATE de serialização/deadlock/lock indisponível (PostgreSQL)
_LOCK_CONFLICT_CODES = {'40001', '40P01', '55P03'}


def _pairs(rows: Iterable) -> List[tuple]:
    return [(row.pk, row.position) for row in rows]


def _is_lock_conflict(exc: OperationalError) -> bool:
    cause = exc.__cause__
    if getattr(cause, 'pgcode', None) in _LOCK_CONFLICT_CODES:
        return True
    text = str(exc).lower()
    return 'locked' in text or 'deadlock' in text


class MutationCoordinator:
    """
    Serviço que executa mutações de boards, listas e cards

    O principal (usuário autenticado) é sempre passado explicitamente.
    Os métodos públicos devolvem projeções (dicts) prontas para JSON.
    """

    def __init__(self, store=None, permissions=None, dispatcher=None):
        self._store = store or entity_store
        self._permissions = permissions or board_permissions
        self._dispatcher = dispatcher or change_dispatcher

    # =================== UNIDADE DE TRABALHO ===================

    def _run(self, operation, *args, **kwargs):
        """
        Executa `operation` atomicamente, repetindo em caso de conflito

        Qualquer erro desfaz a transação; callbacks on_commit (broadcast)
        registrados dentro dela são descartados junto.
        """
        retries = getattr(settings, 'KANBAN_CONFLICT_RETRIES', 3)
        attempt = 0
        while True:
            attempt += 1
            try:
                with transaction.atomic():
                    return operation(*args, **kwargs)
            except ConflictError as exc:
                if attempt > retries:
                    logger.error(f"❌ Conflito persistente em {operation.__name__}: {exc.message}")
                    raise
                logger.warning(f"🔁 Conflito em {operation.__name__} - tentativa {attempt}/{retries}")
            except OperationalError as exc:
                if not _is_lock_conflict(exc):
                    logger.error(f"❌ Falha de persistência em {operation.__name__}: {exc}")
                    raise StoreFailure('storage unavailable') from exc
                if attempt > retries:
                    logger.error(f"❌ Conflito persistente em {operation.__name__}: {exc}")
                    raise ConflictError(
                        'concurrent update on the same sequence, retry the operation'
                    ) from exc
                logger.warning(f"🔁 Lock concorrente em {operation.__name__} - tentativa {attempt}/{retries}")
            except DatabaseError as exc:
                logger.error(f"❌ Falha de persistência em {operation.__name__}: {exc}")
                raise StoreFailure('storage unavailable') from exc

    def _apply_positions(self, rows: Iterable, after, skip=()) -> dict:
        """
        Grava (bulk_update) as linhas cuja posição mudou

        `rows` são os modelos com as posições gravadas hoje; `after` a nova
        sequência do Position Engine. Ids em `skip` entram no resultado mas
        são gravados por quem chamou.
        """
        rows = list(rows)
        by_id = {row.pk: row for row in rows}
        changed = positions.changed_positions(_pairs(rows), after)

        now = timezone.now()
        dirty = []
        for item_id, position in changed.items():
            if item_id in skip or item_id not in by_id:
                continue
            row = by_id[item_id]
            row.position = position
            row.updated_at = now
            dirty.append(row)

        self._store.save_all(dirty, ['position', 'updated_at'])
        return changed

    def _publish(self, event_type, principal, board_id, **payload):
        event = BoardEvent(
            type=event_type,
            board_id=board_id,
            actor_id=principal.pk,
            actor_name=format_user_name(principal),
            **payload
        )
        self._dispatcher.publish_on_commit(event)
        return event

    # =================== RESOLUÇÃO ===================

    def _live_list(self, list_id) -> BoardList:
        """Lista ativa cujo board e workspace também estão ativos"""
        board_list = self._store.load_list(list_id)
        board = board_list.board
        if board.is_deleted or board.workspace.is_deleted:
            raise NotFound.for_resource('list', list_id)
        return board_list

    def _live_card(self, card_id) -> Card:
        card = self._store.load_card(card_id)
        board_list = card.board_list
        if board_list.is_deleted or board_list.board.is_deleted or board_list.board.workspace.is_deleted:
            raise NotFound.for_resource('card', card_id)
        return card

    def _lock_card_lists(self, *list_ids):
        locked = self._store.lock_lists(list_ids)
        for list_id in list_ids:
            if list_id not in locked:
                raise NotFound.for_resource('list', list_id)
        return locked

    # =================== LEITURAS ===================

    def get_board(self, principal, board_id) -> dict:
        board = self._store.load_board(board_id)
        self._permissions.require(principal, board, Action.READ)
        return board_to_dict(self._store.board_snapshot(board_id), include_lists=True)

    def list_boards(self, principal, workspace_id) -> List[dict]:
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.READ)
        return [board_to_dict(board) for board in self._store.boards_in_workspace(workspace.pk)]

    def get_list(self, principal, list_id) -> dict:
        board_list = self._live_list(list_id)
        self._permissions.require(principal, board_list, Action.READ)
        return list_to_dict(self._store.load_list_with_cards(list_id))

    def lists_in_board(self, principal, board_id) -> List[dict]:
        board = self._store.load_board(board_id)
        self._permissions.require(principal, board, Action.READ)
        snapshot = self._store.board_snapshot(board_id)
        return [list_to_dict(board_list) for board_list in snapshot.lists.all()]

    def get_card(self, principal, card_id) -> dict:
        card = self._live_card(card_id)
        self._permissions.require(principal, card, Action.READ)
        return card_to_dict(card)

    def cards_in_list(self, principal, list_id) -> List[dict]:
        board_list = self._live_list(list_id)
        self._permissions.require(principal, board_list, Action.READ)
        loaded = self._store.load_list_with_cards(list_id)
        return [card_to_dict(card) for card in loaded.cards.all()]

    # =================== BOARDS ===================

    def create_board(self, principal, workspace_id, name, description='') -> dict:
        return self._run(self._create_board, principal, workspace_id, name, description)

    def _create_board(self, principal, workspace_id, name, description):
        workspace = self._store.load_workspace(workspace_id)
        self._permissions.require(principal, workspace, Action.CREATE)

        board = Board.objects.create(
            name=name,
            description=description or '',
            workspace=workspace,
            created_by=principal,
        )

        # Listas padrão nas posições 0..n-1
        default_lists = getattr(settings, 'KANBAN_DEFAULT_LISTS', ['To Do', 'In Progress', 'Done'])
        BoardList.objects.bulk_create([
            BoardList(name=list_name, board=board, position=index)
            for index, list_name in enumerate(default_lists)
        ])

        data = board_to_dict(self._store.board_snapshot(board.pk), include_lists=True)
        self._publish(EventType.BOARD_CREATED, principal, board.pk, board=data)

        logger.info(f"✅ Board {board.pk} criado por {principal.username} no workspace {workspace.pk}")
        return data

    def update_board(self, principal, board_id, name=None, description=None) -> dict:
        return self._run(self._update_board, principal, board_id, name, description)

    def _update_board(self, principal, board_id, name, description):
        board = self._store.load_board(board_id, for_update=True)
        self._permissions.require(principal, board, Action.EDIT)

        if name is not None:
            board.name = name
        if description is not None:
            board.description = description
        self._store.save(board)

        data = board_to_dict(board)
        self._publish(EventType.BOARD_UPDATED, principal, board.pk, board=data)
        return data

    def delete_board(self, principal, board_id) -> None:
        self._run(self._delete_board, principal, board_id)

    def _delete_board(self, principal, board_id):
        board = self._store.load_board(board_id, for_update=True)
        self._permissions.require(principal, board, Action.DELETE)

        board.soft_delete()
        self._publish(EventType.BOARD_DELETED, principal, board.pk)

        logger.info(f"🗑️  Board {board.pk} removido por {principal.username}")

    # =================== LISTAS ===================

    def create_list(self, principal, board_id, name, position: Optional[int] = None) -> dict:
        return self._run(self._create_list, principal, board_id, name, position)

    def _create_list(self, principal, board_id, name, position):
        board = self._store.load_board(board_id, for_update=True)
        self._permissions.require(principal, board, Action.CREATE)

        siblings = self._store.list_sequence(board.pk)
        after = positions.insert_at(_pairs(siblings), _NEW, position)
        changed = self._apply_positions(siblings, after)

        board_list = BoardList.objects.create(
            name=name,
            board=board,
            position=dict(after)[_NEW],
        )
        changed.pop(_NEW, None)

        data = list_to_dict(board_list)
        self._publish(
            EventType.LIST_CREATED, principal, board.pk,
            board_list=data,
            list_id=board_list.pk,
            positions={'lists': changed},
        )
        return data

    def update_list(self, principal, list_id, name=None, position: Optional[int] = None) -> dict:
        return self._run(self._update_list, principal, list_id, name, position)

    def _update_list(self, principal, list_id, name, position):
        board_list = self._live_list(list_id)
        if name is not None:
            self._permissions.require(principal, board_list, Action.EDIT)
        if position is not None:
            self._permissions.require(principal, board_list, Action.REORDER)

        # Trava o board e relê a sequência já sob o lock
        board = self._store.load_board(board_list.board_id, for_update=True)
        siblings = self._store.list_sequence(board.pk)
        current = next((row for row in siblings if row.pk == board_list.pk), None)
        if current is None:
            raise ConflictError(f"list {list_id} changed concurrently")

        changed = {}
        if position is not None:
            after = positions.move_within_sequence(_pairs(siblings), current.pk, position)
            changed = self._apply_positions(siblings, after)

        if name is not None:
            current.name = name
            self._store.save(current, update_fields=['name', 'updated_at'])

        data = list_to_dict(current)
        self._publish(
            EventType.LIST_UPDATED, principal, board.pk,
            board_list=data,
            list_id=current.pk,
            positions={'lists': changed},
        )
        return data

    def delete_list(self, principal, list_id) -> None:
        self._run(self._delete_list, principal, list_id)

    def _delete_list(self, principal, list_id):
        board_list = self._live_list(list_id)
        self._permissions.require(principal, board_list, Action.DELETE)

        board = self._store.load_board(board_list.board_id, for_update=True)
        siblings = self._store.list_sequence(board.pk)
        if board_list.pk not in {row.pk for row in siblings}:
            raise ConflictError(f"list {list_id} changed concurrently")

        after = positions.remove_id(_pairs(siblings), board_list.pk)
        remaining = [row for row in siblings if row.pk != board_list.pk]
        changed = self._apply_positions(remaining, after)

        # O registro removido mantém a posição antiga
        board_list.soft_delete()

        self._publish(
            EventType.LIST_DELETED, principal, board.pk,
            list_id=board_list.pk,
            positions={'lists': changed},
        )
        logger.info(f"🗑️  Lista {board_list.pk} removida do board {board.pk} por {principal.username}")

    # =================== CARDS ===================

    def create_card(self, principal, list_id, title, description='', position: Optional[int] = None,
                    assignee_ids=None, due_date=None, priority=None) -> dict:
        return self._run(
            self._create_card, principal, list_id, title, description,
            position, assignee_ids, due_date, priority,
        )

    def _create_card(self, principal, list_id, title, description, position,
                     assignee_ids, due_date, priority):
        board_list = self._live_list(list_id)
        self._permissions.require(principal, board_list, Action.CREATE)
        self._lock_card_lists(board_list.pk)

        siblings = self._store.card_sequence(board_list.pk)
        after = positions.insert_at(_pairs(siblings), _NEW, position)
        changed = self._apply_positions(siblings, after)

        card = Card.objects.create(
            title=title,
            description=description or '',
            board_list=board_list,
            position=dict(after)[_NEW],
            created_by=principal,
            last_modified_by=principal,
            due_date=due_date,
            priority=priority or Card.Priority.MEDIUM,
        )
        if assignee_ids:
            card.assignees.set(self._store.find_users(assignee_ids))
        changed.pop(_NEW, None)

        data = card_to_dict(self._store.load_card(card.pk))
        self._publish(
            EventType.CARD_CREATED, principal, board_list.board_id,
            card=data,
            card_id=card.pk,
            list_id=board_list.pk,
            positions={'cards': changed},
        )
        return data

    def update_card(self, principal, card_id, title=None, description=None, due_date=None,
                    priority=None, assignee_ids=None, clear_due_date=False) -> dict:
        return self._run(
            self._update_card, principal, card_id, title, description,
            due_date, priority, assignee_ids, clear_due_date,
        )

    def _update_card(self, principal, card_id, title, description, due_date,
                     priority, assignee_ids, clear_due_date):
        card = self._live_card(card_id)
        self._permissions.require(principal, card, Action.EDIT)
        if assignee_ids is not None:
            self._permissions.require(principal, card, Action.ASSIGN)

        if title is not None:
            card.title = title
        if description is not None:
            card.description = description
        if priority is not None:
            card.priority = priority
        if due_date is not None:
            card.due_date = due_date
        elif clear_due_date:
            card.due_date = None
        card.last_modified_by = principal
        # board_list e position só mudam pelo move
        self._store.save(card, update_fields=[
            'title', 'description', 'priority', 'due_date', 'last_modified_by', 'updated_at',
        ])

        if assignee_ids is not None:
            card.assignees.set(self._store.find_users(assignee_ids))

        data = card_to_dict(self._store.load_card(card.pk))
        self._publish(
            EventType.CARD_UPDATED, principal, card.board_list.board_id,
            card=data,
            card_id=card.pk,
            list_id=data['listId'],
        )
        return data

    def move_card(self, principal, card_id, target_list_id, new_position: Optional[int] = None) -> dict:
        return self._run(self._move_card, principal, card_id, target_list_id, new_position)

    def _move_card(self, principal, card_id, target_list_id, new_position):
        # 1. card e lista de origem
        card = self._live_card(card_id)
        source_list = card.board_list

        # 2. lista de destino precisa pertencer a um board ativo
        target_list = self._store.load_list(target_list_id)
        target_board = target_list.board
        if target_board.is_deleted or target_board.workspace.is_deleted:
            raise InvalidRequest(f"target list {target_list_id} does not belong to an active board")

        # 3. acesso ao board de destino + regra de edição do card
        self._permissions.require(principal, target_board, Action.READ)
        self._permissions.require(principal, card, Action.MOVE)

        # 4. nada de mover entre boards por aqui
        if source_list.board_id != target_list.board_id:
            raise InvalidRequest('cross-board move not permitted through this operation')

        # 5-6. reindexação sob lock das listas envolvidas
        self._lock_card_lists(source_list.pk, target_list.pk)
        source_cards = self._store.card_sequence(source_list.pk)
        moving = next((row for row in source_cards if row.pk == card.pk), None)
        if moving is None:
            raise ConflictError(f"card {card_id} changed concurrently")

        if source_list.pk == target_list.pk:
            after = positions.move_within_sequence(_pairs(source_cards), card.pk, new_position)
            changed = self._apply_positions(source_cards, after, skip={card.pk})
            final_position = dict(after)[card.pk]
        else:
            target_cards = self._store.card_sequence(target_list.pk)
            new_source, new_target = positions.move_across_sequences(
                _pairs(source_cards), _pairs(target_cards), card.pk, new_position
            )
            remaining = [row for row in source_cards if row.pk != card.pk]
            changed = self._apply_positions(remaining, new_source)
            changed.update(self._apply_positions(target_cards, new_target, skip={card.pk}))
            final_position = dict(new_target)[card.pk]
            changed[card.pk] = final_position

        # 7. o próprio card
        card.board_list = target_list
        card.position = final_position
        card.last_modified_by = principal
        self._store.save(card, update_fields=['board_list', 'position', 'last_modified_by', 'updated_at'])

        # 8. um único CARD_MOVED
        data = card_to_dict(self._store.load_card(card.pk))
        self._publish(
            EventType.CARD_MOVED, principal, target_board.pk,
            card=data,
            card_id=card.pk,
            list_id=target_list.pk,
            previous_list_id=source_list.pk,
            positions={'cards': changed},
        )

        logger.info(
            f"🔀 Card {card.pk} movido {source_list.pk} -> {target_list.pk} "
            f"#{final_position} por {principal.username}"
        )
        return data

    def delete_card(self, principal, card_id) -> None:
        self._run(self._delete_card, principal, card_id)

    def _delete_card(self, principal, card_id):
        card = self._live_card(card_id)
        self._permissions.require(principal, card, Action.DELETE)

        board_list = card.board_list
        self._lock_card_lists(board_list.pk)
        siblings = self._store.card_sequence(board_list.pk)
        if card.pk not in {row.pk for row in siblings}:
            raise ConflictError(f"card {card_id} changed concurrently")

        after = positions.remove_id(_pairs(siblings), card.pk)
        remaining = [row for row in siblings if row.pk != card.pk]
        changed = self._apply_positions(remaining, after)

        card.last_modified_by = principal
        card.is_deleted = True
        self._store.save(card, update_fields=['is_deleted', 'last_modified_by', 'updated_at'])

        self._publish(
            EventType.CARD_DELETED, principal, board_list.board_id,
            card_id=card.pk,
            list_id=board_list.pk,
            previous_list_id=board_list.pk,
            positions={'cards': changed},
        )


# Instância global
mutation_coordinator = MutationCoordinator()
