# apps/core/serializers.py

"""
Projeções (read models) enviadas para clientes HTTP e WebSocket

Tudo aqui devolve dicts com tipos simples (datas em ISO) para que o mesmo
payload sirva ao JsonResponse e ao channel layer (msgpack no Redis).
Espera modelos já carregados pelo EntityStore.
"""

from .utils import format_user_name, isoformat_or_none


def user_to_dict(user):
    return {
        'id': user.pk,
        'username': user.username,
        'email': user.email,
        'fullName': user.full_name,
        'displayName': format_user_name(user),
        'role': user.role,
        'isDeleted': user.is_deleted,
    }


def card_to_dict(card):
    """
    Projeção completa do card

    `assignedUserIds` é a forma canônica; `assignedTo`/`assigneeName`
    (primeiro responsável) existem só para clientes que exibem um único nome.
    """
    assignees = sorted(card.assignees.all(), key=lambda user: user.pk)
    assigned_ids = [user.pk for user in assignees]
    assigned_names = [format_user_name(user) for user in assignees]

    return {
        'id': card.pk,
        'title': card.title,
        'description': card.description,
        'listId': card.board_list_id,
        'position': card.position,
        'priority': card.priority,
        'createdBy': card.created_by_id,
        'creatorName': format_user_name(card.created_by),
        'assignedUserIds': assigned_ids,
        'assignedUserNames': assigned_names,
        'assignedTo': assigned_ids[0] if assigned_ids else None,
        'assigneeName': assigned_names[0] if assigned_names else None,
        'lastModifiedBy': card.last_modified_by_id,
        'lastModifiedByName': format_user_name(card.last_modified_by),
        'dueDate': isoformat_or_none(card.due_date),
        'createdAt': isoformat_or_none(card.created_at),
        'updatedAt': isoformat_or_none(card.updated_at),
    }


def list_to_dict(board_list, include_cards=True):
    data = {
        'id': board_list.pk,
        'name': board_list.name,
        'boardId': board_list.board_id,
        'position': board_list.position,
        'createdAt': isoformat_or_none(board_list.created_at),
        'updatedAt': isoformat_or_none(board_list.updated_at),
    }
    if include_cards:
        data['cards'] = [card_to_dict(card) for card in board_list.cards.all()]
    return data


def board_to_dict(board, include_lists=False):
    data = {
        'id': board.pk,
        'name': board.name,
        'description': board.description,
        'workspaceId': board.workspace_id,
        'createdBy': board.created_by_id,
        'createdAt': isoformat_or_none(board.created_at),
        'updatedAt': isoformat_or_none(board.updated_at),
    }
    if include_lists:
        data['lists'] = [list_to_dict(board_list) for board_list in board.lists.all()]
    return data


def workspace_to_dict(workspace):
    return {
        'id': workspace.pk,
        'name': workspace.name,
        'description': workspace.description,
        'ownerId': workspace.owner_id,
        'createdAt': isoformat_or_none(workspace.created_at),
    }


def workspace_member_to_dict(member):
    return {
        'id': member.pk,
        'userId': member.user_id,
        'userName': format_user_name(member.user),
        'userEmail': member.user.email,
        'role': member.role,
        'joinedAt': isoformat_or_none(member.created_at),
    }


def board_member_to_dict(member):
    return {
        'id': member.pk,
        'boardId': member.board_id,
        'userId': member.user_id,
        'username': member.user.username,
        'email': member.user.email,
        'fullName': member.user.full_name,
        'createdAt': isoformat_or_none(member.created_at),
    }
