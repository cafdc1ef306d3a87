# apps/core/admin_service.py

"""
Serviço de Administração - operações exclusivas do ADMIN global
"""

import logging
from typing import Dict, List

from .exceptions import InvalidRequest, NotFound
from .models import User
from .permissions import board_permissions
from .serializers import user_to_dict
from .store import entity_store

logger = logging.getLogger(__name__)


class AdminService:

    def __init__(self, store=None, permissions=None):
        self._store = store or entity_store
        self._permissions = permissions or board_permissions

    def statistics(self, principal) -> Dict[str, int]:
        """Contagens de linhas ativas (totalUsers inclui desativados)"""
        self._permissions.require_admin(principal)
        return self._store.statistics()

    def list_users(self, principal) -> List[dict]:
        self._permissions.require_admin(principal)
        return [user_to_dict(user) for user in User.all_objects.order_by('username')]

    def update_role(self, principal, user_id, role) -> dict:
        self._permissions.require_admin(principal)
        if role not in User.Role.values:
            raise InvalidRequest(f"unknown role {role!r}")

        user = self._get_any_user(user_id)
        user.role = role
        user.save(update_fields=['role'])

        logger.info(f"🔑 Papel de {user.username} alterado para {role} por {principal.username}")
        return user_to_dict(user)

    def toggle_status(self, principal, user_id) -> dict:
        """Ativa/desativa um usuário (tombstone); o admin não desativa a si mesmo"""
        self._permissions.require_admin(principal)

        user = self._get_any_user(user_id)
        if user.pk == principal.pk:
            raise InvalidRequest('administrators cannot deactivate themselves')

        user.is_deleted = not user.is_deleted
        user.save(update_fields=['is_deleted'])

        status = 'desativado' if user.is_deleted else 'reativado'
        logger.info(f"👤 Usuário {user.username} {status} por {principal.username}")
        return user_to_dict(user)

    @staticmethod
    def _get_any_user(user_id) -> User:
        """Inclui usuários desativados (senão não haveria como reativá-los)"""
        try:
            return User.all_objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound.for_resource('user', user_id)


# Instância global
admin_service = AdminService()
