import pytest

from apps.core.models import Card, User, WorkspaceMember

from .conftest import add_cards, card_titles

pytestmark = pytest.mark.django_db


@pytest.fixture
def api(client):
    """Cliente JSON: api.post('/api/cards', {...})"""

    class Api:
        def get(self, url):
            return client.get(url)

        def post(self, url, data=None):
            return client.post(url, data or {}, content_type='application/json')

        def put(self, url, data=None):
            return client.put(url, data or {}, content_type='application/json')

        def delete(self, url):
            return client.delete(url)

        def login(self, user):
            client.force_login(user)

    return Api()


def error_kind(response):
    body = response.json()
    assert body['success'] is False
    return body['error']['kind']


# === AUTENTICAÇÃO ===

def test_login_with_username_or_email(api, member):
    response = api.post('/api/auth/login', {'username': 'mark', 'password': 'secret-pass-123'})
    assert response.status_code == 200
    assert response.json()['data']['username'] == 'mark'

    response = api.post('/api/auth/login', {'username': 'mark@example.com', 'password': 'secret-pass-123'})
    assert response.status_code == 200


def test_login_failure_and_lockout(api, member):
    for _ in range(5):
        response = api.post('/api/auth/login', {'username': 'mark', 'password': 'wrong'})
        assert response.status_code == 401
        assert error_kind(response) == 'NOT_AUTHENTICATED'

    response = api.post('/api/auth/login', {'username': 'mark', 'password': 'secret-pass-123'})
    assert response.status_code == 401
    assert 'too many failed attempts' in response.json()['error']['message']


def test_login_validation_error(api):
    response = api.post('/api/auth/login', {'username': 'mark'})
    assert response.status_code == 400
    body = response.json()
    assert body['error']['kind'] == 'VALIDATION_ERROR'
    assert 'password' in body['error']['details']


def test_malformed_json_is_rejected(api, member, client):
    api.login(member)
    response = client.post('/api/cards', 'not json', content_type='application/json')
    assert response.status_code == 400
    assert response.json()['error']['message'] == 'malformed JSON body'


def test_me_requires_authentication(api, member):
    response = api.get('/api/auth/me')
    assert response.status_code == 401

    api.login(member)
    response = api.get('/api/auth/me')
    assert response.json()['data']['displayName'] == 'Mark'


def test_logout(api, member):
    api.login(member)
    assert api.post('/api/auth/logout').status_code == 200
    assert api.get('/api/auth/me').status_code == 401


def test_register_creates_plain_user_and_logs_in(api):
    response = api.post('/api/auth/register', {
        'username': 'nina',
        'email': 'nina@example.com',
        'password': 'secret-pass-123',
        'fullName': 'Nina New',
    })

    assert response.status_code == 201
    data = response.json()['data']
    assert data['role'] == 'USER'
    assert data['displayName'] == 'Nina New'
    assert User.objects.get(username='nina').check_password('secret-pass-123')

    assert api.get('/api/auth/me').json()['data']['username'] == 'nina'


def test_register_rejects_taken_username_or_email(api, member):
    response = api.post('/api/auth/register', {
        'username': 'Mark', 'email': 'other@example.com', 'password': 'secret-pass-123',
    })
    assert response.status_code == 400
    assert response.json()['error']['message'] == 'username already exists'

    response = api.post('/api/auth/register', {
        'username': 'marcus', 'email': 'MARK@example.com', 'password': 'secret-pass-123',
    })
    assert error_kind(response) == 'VALIDATION_ERROR'
    assert response.json()['error']['message'] == 'email already exists'
    assert not User.all_objects.filter(username='marcus').exists()


def test_register_reuses_email_of_deactivated_user(api, member):
    User.all_objects.filter(pk=member.pk).update(is_deleted=True)
    response = api.post('/api/auth/register', {
        'username': 'marcus', 'email': 'mark@example.com', 'password': 'secret-pass-123',
    })
    assert response.status_code == 201


def test_register_validation_error(api):
    response = api.post('/api/auth/register', {'username': 'nina', 'email': 'not-an-email', 'password': '123'})
    assert response.status_code == 400
    details = response.json()['error']['details']
    assert 'email' in details
    assert 'password' in details


# === BOARDS E LISTAS ===

def test_create_board_through_api(api, member, workspace):
    api.login(member)
    response = api.post('/api/boards', {'workspaceId': workspace.pk, 'name': 'Roadmap'})

    assert response.status_code == 201
    data = response.json()['data']
    assert [item['name'] for item in data['lists']] == ['To Do', 'In Progress', 'Done']


def test_board_detail_and_errors(api, member, outsider, board):
    api.login(member)
    response = api.get(f'/api/boards/{board.pk}')
    assert response.status_code == 200
    assert response.json()['data']['name'] == 'Sprint'

    assert api.get('/api/boards/999999').status_code == 404
    assert error_kind(api.put(f'/api/boards/{board.pk}', {'name': 'Mine'})) == 'ACCESS_DENIED'

    api.login(outsider)
    response = api.get(f'/api/boards/{board.pk}')
    assert response.status_code == 403


def test_partial_update_keeps_omitted_fields(api, owner, board):
    board.description = 'keep me'
    board.save()

    api.login(owner)
    response = api.put(f'/api/boards/{board.pk}', {'name': 'Renamed'})

    assert response.status_code == 200
    assert response.json()['data']['description'] == 'keep me'


def test_list_endpoints(api, owner, board, lists):
    api.login(owner)
    response = api.post('/api/lists', {'boardId': board.pk, 'name': 'Review', 'position': 1})
    assert response.status_code == 201

    names = [item['name'] for item in api.get(f'/api/lists/board/{board.pk}').json()['data']]
    assert names == ['To Do', 'Review', 'In Progress', 'Done']

    response = api.put(f"/api/lists/{lists[2].pk}", {'position': 0})
    assert response.json()['data']['position'] == 0

    assert api.delete(f'/api/lists/{lists[0].pk}').status_code == 200
    assert api.get(f'/api/lists/{lists[0].pk}').status_code == 404


# === CARDS ===

def test_create_and_move_card(api, member, owner, todo, doing):
    add_cards(todo, owner, 'A', 'B')
    api.login(member)

    response = api.post('/api/cards', {
        'listId': todo.pk,
        'title': 'C',
        'position': 0,
        'priority': 'HIGH',
        'dueDate': '2030-01-15T10:00:00Z',
    })
    assert response.status_code == 201
    card = response.json()['data']
    assert card['priority'] == 'HIGH'
    assert card['dueDate'].startswith('2030-01-15T10:00:00')
    assert card_titles(todo) == ['C', 'A', 'B']

    response = api.post(f"/api/cards/{card['id']}/move", {'targetListId': doing.pk, 'newPosition': 0})
    assert response.status_code == 200
    assert response.json()['data']['listId'] == doing.pk
    assert card_titles(todo) == ['A', 'B']
    assert card_titles(doing) == ['C']


def test_move_requires_target_list(api, member, owner, todo):
    [card] = add_cards(todo, owner, 'A')
    api.login(member)
    response = api.post(f'/api/cards/{card.pk}/move', {'newPosition': 0})
    assert response.status_code == 400
    assert 'target_list_id' in response.json()['error']['details']


def test_invalid_priority(api, member, todo):
    api.login(member)
    response = api.post('/api/cards', {'listId': todo.pk, 'title': 'X', 'priority': 'URGENT'})
    assert response.status_code == 400
    assert 'priority' in response.json()['error']['details']


def test_update_card_clears_due_date_and_keeps_title(api, member, owner, todo):
    [card] = add_cards(todo, member, 'Keep')
    Card.objects.filter(pk=card.pk).update(description='old')
    api.login(member)

    response = api.put(f'/api/cards/{card.pk}', {'dueDate': None, 'description': 'new'})

    data = response.json()['data']
    assert data['title'] == 'Keep'
    assert data['description'] == 'new'
    assert data['dueDate'] is None


def test_member_cannot_reassign_card_through_legacy_field(api, member, owner, todo):
    [card] = add_cards(todo, member, 'X')
    api.login(member)
    response = api.put(f'/api/cards/{card.pk}', {'assignedTo': owner.pk})
    assert response.status_code == 403


def test_cards_in_list_and_delete(api, member, owner, todo):
    cards = add_cards(todo, owner, 'A', 'B', 'C')
    api.login(owner)

    assert api.delete(f'/api/cards/{cards[0].pk}').status_code == 200

    data = api.get(f'/api/cards/list/{todo.pk}').json()['data']
    assert [(item['title'], item['position']) for item in data] == [('B', 0), ('C', 1)]


# === WORKSPACES E ADMIN ===

def test_workspace_endpoints(api, admin_user, outsider):
    api.login(admin_user)
    response = api.post('/api/workspaces', {'name': 'Ops'})
    assert response.status_code == 201
    workspace_id = response.json()['data']['id']

    response = api.post(f'/api/workspaces/{workspace_id}/members', {'userId': outsider.pk})
    assert response.status_code == 201
    assert response.json()['data']['role'] == WorkspaceMember.Role.MEMBER

    members = api.get(f'/api/workspaces/{workspace_id}/members').json()['data']
    assert [m['userId'] for m in members] == [admin_user.pk, outsider.pk]

    assert api.delete(f'/api/workspaces/{workspace_id}/members/{outsider.pk}').status_code == 200

    api.login(outsider)
    assert api.get('/api/workspaces').json()['data'] == []


def test_board_users_lists_active_workspace_members(api, owner, member, outsider, board):
    api.login(member)
    response = api.get(f'/api/users/board/{board.pk}')
    assert response.status_code == 200
    assert [user['username'] for user in response.json()['data']] == ['olivia', 'mark']

    User.all_objects.filter(pk=owner.pk).update(is_deleted=True)
    WorkspaceMember.objects.create(workspace=board.workspace, user=outsider, is_deleted=True)
    response = api.get(f'/api/users/board/{board.pk}')
    assert [user['username'] for user in response.json()['data']] == ['mark']


def test_board_users_requires_board_access(api, outsider, board):
    assert api.get(f'/api/users/board/{board.pk}').status_code == 401

    api.login(outsider)
    response = api.get(f'/api/users/board/{board.pk}')
    assert response.status_code == 403
    assert error_kind(response) == 'ACCESS_DENIED'

    assert api.get('/api/users/board/999999').status_code == 404


def test_admin_endpoints(api, admin_user, member):
    api.login(member)
    assert api.get('/api/admin/statistics').status_code == 403

    api.login(admin_user)
    assert api.get('/api/admin/statistics').json()['data']['totalUsers'] == 2

    response = api.put(f'/api/admin/users/{member.pk}/role', {'role': 'ADMIN'})
    assert response.json()['data']['role'] == 'ADMIN'

    response = api.post(f'/api/admin/users/{member.pk}/toggle-status')
    assert response.json()['data']['isDeleted'] is True


def test_method_not_allowed(api, member):
    api.login(member)
    assert api.get('/api/cards').status_code == 405


def test_health_check(api):
    response = api.get('/api/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'
