# apps/core/views.py

"""
API JSON de autenticação, workspaces e administração

Erros de domínio sobem como exceção e o KanbanErrorMiddleware monta a
resposta; as views só tratam o caminho feliz.
"""

import logging

from django.core.cache import cache
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt, ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .admin_service import admin_service
from .auth_service import auth_service, principal_required
from .exceptions import NotAuthenticated
from .forms import (
    BoardMemberForm, LoginForm, MemberForm, RegisterForm, RoleForm, WorkspaceForm, clean_payload
)
from .models import User
from .serializers import user_to_dict
from .utils import read_json
from .workspace_service import workspace_service

logger = logging.getLogger(__name__)


def ok(data=None, status=200):
    payload = {'success': True}
    if data is not None:
        payload['data'] = data
    return JsonResponse(payload, status=status)


# === AUTENTICAÇÃO ===

@csrf_exempt
@require_POST
def login_view(request):
    """Login por sessão; devolve o usuário autenticado"""
    fields = clean_payload(LoginForm, read_json(request))

    sucesso, mensagem, usuario = auth_service.fazer_login(
        request, fields['username'], fields['password'], fields['remember_me']
    )
    if not sucesso:
        raise NotAuthenticated(mensagem)

    return JsonResponse({'success': True, 'message': mensagem, 'data': user_to_dict(usuario)})


@csrf_exempt
@require_POST
def register_view(request):
    """Cadastro aberto: cria um usuário USER já autenticado"""
    fields = clean_payload(RegisterForm, read_json(request))
    usuario = auth_service.registrar_usuario(
        request, fields['username'], fields['email'], fields['password'], fields['full_name']
    )
    return ok(user_to_dict(usuario), status=201)


@require_POST
def logout_view(request):
    auth_service.fazer_logout(request)
    return ok()


@ensure_csrf_cookie
@require_GET
@principal_required
def me_view(request, principal):
    return ok(user_to_dict(principal))


# === WORKSPACES ===

@require_http_methods(['GET', 'POST'])
@principal_required
def workspaces(request, principal):
    if request.method == 'GET':
        return ok(workspace_service.list_workspaces(principal))

    fields = clean_payload(WorkspaceForm, read_json(request))
    workspace = workspace_service.create_workspace(principal, fields['name'], fields['description'])
    return ok(workspace, status=201)


@require_http_methods(['PUT', 'DELETE'])
@principal_required
def workspace_detail(request, principal, workspace_id):
    if request.method == 'DELETE':
        workspace_service.delete_workspace(principal, workspace_id)
        return ok()

    fields = clean_payload(WorkspaceForm, read_json(request), partial=True)
    workspace = workspace_service.update_workspace(
        principal, workspace_id,
        name=fields.get('name'),
        description=fields.get('description'),
    )
    return ok(workspace)


@require_http_methods(['GET', 'POST'])
@principal_required
def workspace_members(request, principal, workspace_id):
    if request.method == 'GET':
        return ok(workspace_service.list_members(principal, workspace_id))

    fields = clean_payload(MemberForm, read_json(request))
    member = workspace_service.assign_member(
        principal, workspace_id, fields['user_id'], fields.get('role') or None
    )
    return ok(member, status=201)


@require_http_methods(['DELETE'])
@principal_required
def workspace_member_detail(request, principal, workspace_id, user_id):
    workspace_service.remove_member(principal, workspace_id, user_id)
    return ok()


# === MEMBROS DO BOARD ===

@require_http_methods(['GET', 'POST'])
@principal_required
def board_members(request, principal, board_id):
    if request.method == 'GET':
        return ok(workspace_service.list_board_members(principal, board_id))

    fields = clean_payload(BoardMemberForm, read_json(request))
    member = workspace_service.add_board_member(principal, board_id, fields['user_id'])
    return ok(member, status=201)


@require_http_methods(['DELETE'])
@principal_required
def board_member_detail(request, principal, board_id, user_id):
    workspace_service.remove_board_member(principal, board_id, user_id)
    return ok()


@require_GET
@principal_required
def board_users(request, principal, board_id):
    """Usuários do workspace do board (candidatos a responsáveis de card)"""
    return ok(workspace_service.board_users(principal, board_id))


# === ADMINISTRAÇÃO ===

@require_GET
@principal_required
def admin_statistics(request, principal):
    return ok(admin_service.statistics(principal))


@require_GET
@principal_required
def admin_users(request, principal):
    return ok(admin_service.list_users(principal))


@require_http_methods(['PUT'])
@principal_required
def admin_user_role(request, principal, user_id):
    fields = clean_payload(RoleForm, read_json(request))
    return ok(admin_service.update_role(principal, user_id, fields['role']))


@require_POST
@principal_required
def admin_toggle_status(request, principal, user_id):
    return ok(admin_service.toggle_status(principal, user_id))


# === MONITORAMENTO ===

@require_GET
def health_check(request):
    """
    Health check para monitoramento (sem autenticação)
    """
    try:
        # Verificar conexão com banco
        User.all_objects.exists()

        # Verificar cache (Redis em produção)
        cache.set('health_check', 'ok', 60)
        cache.get('health_check')

        status = {
            'status': 'healthy',
            'database': 'ok',
            'cache': 'ok',
            'timestamp': timezone.now().isoformat(),
        }
        return JsonResponse(status)

    except Exception as e:
        logger.error(f"❌ Health check falhou: {e}")
        status = {
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': timezone.now().isoformat(),
        }
        return JsonResponse(status, status=503)
