"""
Fixtures compartilhadas: usuários, workspace, board com listas padrão e
um channel layer que só grava o que foi publicado
"""

import pytest
from django.core.cache import cache

from apps.board.coordinator import MutationCoordinator
from apps.board.dispatcher import ChangeDispatcher
from apps.core.models import Board, BoardList, Card, User, Workspace, WorkspaceMember
from apps.core.store import EntityStore
from apps.core.workspace_service import WorkspaceService


class RecordingChannelLayer:
    """Channel layer falso: guarda (grupo, mensagem) de cada group_send"""

    def __init__(self):
        self.sent = []

    async def group_send(self, group, message):
        self.sent.append((group, message))

    def groups(self):
        return [group for group, _ in self.sent]

    def messages(self, group=None):
        return [message['message'] for sent_group, message in self.sent
                if group is None or sent_group == group]


@pytest.fixture
def channel_layer():
    return RecordingChannelLayer()


@pytest.fixture
def dispatcher(channel_layer):
    return ChangeDispatcher(channel_layer=channel_layer)


@pytest.fixture
def coordinator(dispatcher):
    return MutationCoordinator(store=EntityStore(), dispatcher=dispatcher)


@pytest.fixture
def workspaces(dispatcher):
    return WorkspaceService(dispatcher=dispatcher)


# === USUÁRIOS ===

def make_user(username, role=User.Role.USER, full_name=''):
    return User.objects.create_user(
        username=username,
        email=f'{username}@example.com',
        password='secret-pass-123',
        full_name=full_name,
        role=role,
    )


@pytest.fixture
def admin_user(db):
    return make_user('root', role=User.Role.ADMIN, full_name='Root Admin')


@pytest.fixture
def owner(db):
    return make_user('olivia', full_name='Olivia Owner')


@pytest.fixture
def member(db):
    return make_user('mark')


@pytest.fixture
def outsider(db):
    return make_user('eve')


# === ESTRUTURA ===

@pytest.fixture
def workspace(owner, member):
    workspace = Workspace.objects.create(name='Engineering', owner=owner)
    WorkspaceMember.objects.create(workspace=workspace, user=owner, role=WorkspaceMember.Role.OWNER)
    WorkspaceMember.objects.create(workspace=workspace, user=member, role=WorkspaceMember.Role.MEMBER)
    return workspace


@pytest.fixture
def board(workspace, owner):
    board = Board.objects.create(name='Sprint', workspace=workspace, created_by=owner)
    for position, name in enumerate(['To Do', 'In Progress', 'Done']):
        BoardList.objects.create(name=name, board=board, position=position)
    return board


@pytest.fixture
def lists(board):
    return list(BoardList.objects.filter(board=board).order_by('position'))


@pytest.fixture
def todo(lists):
    return lists[0]


@pytest.fixture
def doing(lists):
    return lists[1]


def add_cards(board_list, creator, *titles):
    """Cria cards direto no banco, em posições 0..n-1 após os existentes"""
    start = Card.objects.filter(board_list=board_list).count()
    return [
        Card.objects.create(
            title=title,
            board_list=board_list,
            position=start + offset,
            created_by=creator,
        )
        for offset, title in enumerate(titles)
    ]


def card_titles(board_list):
    return list(
        Card.objects.filter(board_list=board_list)
        .order_by('position', 'id')
        .values_list('title', flat=True)
    )


def card_positions(board_list):
    return list(
        Card.objects.filter(board_list=board_list)
        .order_by('position', 'id')
        .values_list('position', flat=True)
    )


@pytest.fixture(autouse=True)
def clear_cache():
    # tentativas de login ficam no cache entre testes
    cache.clear()
    yield
    cache.clear()
