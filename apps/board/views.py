# apps/board/views.py

"""
API JSON de boards, listas e cards

Toda mutação passa pelo Mutation Coordinator, que também agenda o
broadcast via WebSocket depois do commit.
"""

from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.core.auth_service import principal_required
from apps.core.forms import clean_payload
from apps.core.utils import read_json
from apps.core.views import ok

from .coordinator import mutation_coordinator
from .forms import BoardForm, CardForm, CardUpdateForm, ListForm, MoveCardForm


# === BOARDS ===

@require_POST
@principal_required
def create_board(request, principal):
    fields = clean_payload(BoardForm, read_json(request))
    board = mutation_coordinator.create_board(
        principal, fields['workspace_id'], fields['name'], fields['description']
    )
    return ok(board, status=201)


@require_http_methods(['GET', 'PUT', 'DELETE'])
@principal_required
def board_detail(request, principal, board_id):
    if request.method == 'GET':
        return ok(mutation_coordinator.get_board(principal, board_id))

    if request.method == 'DELETE':
        mutation_coordinator.delete_board(principal, board_id)
        return ok()

    fields = clean_payload(BoardForm, read_json(request), partial=True)
    board = mutation_coordinator.update_board(
        principal, board_id,
        name=fields.get('name'),
        description=fields.get('description'),
    )
    return ok(board)


@require_GET
@principal_required
def boards_in_workspace(request, principal, workspace_id):
    return ok(mutation_coordinator.list_boards(principal, workspace_id))


# === LISTAS ===

@require_POST
@principal_required
def create_list(request, principal):
    fields = clean_payload(ListForm, read_json(request))
    board_list = mutation_coordinator.create_list(
        principal, fields['board_id'], fields['name'], fields.get('position')
    )
    return ok(board_list, status=201)


@require_http_methods(['GET', 'PUT', 'DELETE'])
@principal_required
def list_detail(request, principal, list_id):
    if request.method == 'GET':
        return ok(mutation_coordinator.get_list(principal, list_id))

    if request.method == 'DELETE':
        mutation_coordinator.delete_list(principal, list_id)
        return ok()

    fields = clean_payload(ListForm, read_json(request), partial=True)
    board_list = mutation_coordinator.update_list(
        principal, list_id,
        name=fields.get('name'),
        position=fields.get('position'),
    )
    return ok(board_list)


@require_GET
@principal_required
def lists_in_board(request, principal, board_id):
    return ok(mutation_coordinator.lists_in_board(principal, board_id))


# === CARDS ===

@require_POST
@principal_required
def create_card(request, principal):
    fields = clean_payload(CardForm, read_json(request))
    card = mutation_coordinator.create_card(
        principal,
        fields['list_id'],
        fields['title'],
        description=fields['description'],
        position=fields.get('position'),
        assignee_ids=fields.get('assigned_user_ids'),
        due_date=fields.get('due_date'),
        priority=fields.get('priority') or None,
    )
    return ok(card, status=201)


@require_http_methods(['GET', 'PUT', 'DELETE'])
@principal_required
def card_detail(request, principal, card_id):
    if request.method == 'GET':
        return ok(mutation_coordinator.get_card(principal, card_id))

    if request.method == 'DELETE':
        mutation_coordinator.delete_card(principal, card_id)
        return ok()

    fields = clean_payload(CardUpdateForm, read_json(request), partial=True)

    assignee_ids = fields.get('assigned_user_ids')
    if 'assigned_user_ids' not in fields and 'assigned_to' in fields:
        assignee_ids = [fields['assigned_to']] if fields['assigned_to'] else []

    card = mutation_coordinator.update_card(
        principal, card_id,
        title=fields.get('title'),
        description=fields.get('description'),
        due_date=fields.get('due_date'),
        clear_due_date='due_date' in fields and fields['due_date'] is None,
        priority=fields.get('priority') or None,
        assignee_ids=assignee_ids,
    )
    return ok(card)


@require_POST
@principal_required
def move_card(request, principal, card_id):
    fields = clean_payload(MoveCardForm, read_json(request))
    card = mutation_coordinator.move_card(
        principal, card_id, fields['target_list_id'], fields.get('new_position')
    )
    return ok(card)


@require_GET
@principal_required
def cards_in_list(request, principal, list_id):
    return ok(mutation_coordinator.cards_in_list(principal, list_id))
