# apps/core/auth_service.py

"""
Credential Service - encapsula toda a lógica de autenticação

Sessão do django.contrib.auth com o modelo core.User. Usuários com
soft delete não autenticam: o manager padrão já os esconde do backend.
"""

import logging
from functools import wraps
from typing import Optional, Tuple

from django.conf import settings
from django.contrib.auth import authenticate, login, logout
from django.core.cache import cache
from django.db import IntegrityError, transaction

from .exceptions import InvalidRequest, NotAuthenticated
from .models import User
from .utils import format_user_name

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Serviço encapsulado para autenticação e resolução do principal

    As tentativas de login falhas ficam no cache (Redis em produção) e
    bloqueiam o usuário por alguns minutos após o limite.
    """

    def __init__(self):
        self._max_login_attempts = getattr(settings, 'KANBAN_MAX_LOGIN_ATTEMPTS', 5)
        self._lockout_duration_minutes = 15

    # =================== PRINCIPAL ===================

    def current_principal(self, request) -> User:
        """
        Usuário autenticado e ativo da requisição

        Levanta NotAuthenticated para anônimos ou usuários desativados.
        """
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated or getattr(user, 'is_deleted', True):
            raise NotAuthenticated('authentication required')
        return user

    # =================== LOGIN / LOGOUT ===================

    def fazer_login(self, request, username: str, password: str,
                    lembrar_me: bool = False) -> Tuple[bool, str, Optional[User]]:
        """
        Realiza login por username ou email

        Returns:
            Tuple[sucesso, mensagem, usuario]
        """
        if self._conta_esta_bloqueada(username):
            logger.warning(f"🔒 Login bloqueado para {username}")
            return False, 'too many failed attempts, try again later', None

        usuario = self._autenticar_usuario(username, password)
        if usuario is None:
            self._registrar_tentativa_falha(username)
            return False, 'invalid credentials', None

        login(request, usuario)
        if lembrar_me:
            self._configurar_sessao_persistente(request)
        self._resetar_tentativas_login(username)

        logger.info(f"✅ Login de {usuario.username}")
        return True, f"Welcome, {format_user_name(usuario)}!", usuario

    def fazer_logout(self, request) -> None:
        username = getattr(request.user, 'username', None)
        logout(request)
        if username:
            logger.info(f"👋 Logout de {username}")

    # =================== CADASTRO ===================

    def registrar_usuario(self, request, username: str, email: str, password: str,
                          full_name: str = '') -> User:
        """
        Cria um usuário comum (role USER) e já abre a sessão

        Username é único entre todos os registros (a coluna é UNIQUE);
        email só conflita com usuários ativos.
        """
        if User.all_objects.filter(username__iexact=username).exists():
            raise InvalidRequest('username already exists')
        if User.objects.filter(email__iexact=email).exists():
            raise InvalidRequest('email already exists')

        try:
            with transaction.atomic():
                usuario = User.objects.create_user(
                    username=username,
                    email=email,
                    password=password,
                    full_name=full_name,
                    role=User.Role.USER,
                )
        except IntegrityError:
            # Cadastro concorrente com o mesmo username
            raise InvalidRequest('username already exists')

        login(request, usuario)
        logger.info(f"🆕 Usuário registrado: {usuario.username}")
        return usuario

    # =================== MÉTODOS PRIVADOS ===================

    def _autenticar_usuario(self, username: str, password: str) -> Optional[User]:
        """Autentica usuário (username ou email)"""
        usuario = authenticate(username=username, password=password)

        if usuario is None and '@' in username:
            user_obj = User.objects.filter(email__iexact=username).first()
            if user_obj is not None:
                usuario = authenticate(username=user_obj.username, password=password)

        return usuario

    @staticmethod
    def _chave_tentativas(username: str) -> str:
        return f"kanban:login-attempts:{username.lower()}"

    def _conta_esta_bloqueada(self, username: str) -> bool:
        return cache.get(self._chave_tentativas(username), 0) >= self._max_login_attempts

    def _registrar_tentativa_falha(self, username: str):
        key = self._chave_tentativas(username)
        timeout = self._lockout_duration_minutes * 60
        if cache.add(key, 1, timeout):
            attempts = 1
        else:
            try:
                attempts = cache.incr(key)
            except ValueError:
                # Chave expirou entre o add e o incr
                cache.set(key, 1, timeout)
                attempts = 1
        logger.warning(f"⚠️  Tentativa de login falha para {username} ({attempts}/{self._max_login_attempts})")

    def _resetar_tentativas_login(self, username: str):
        cache.delete(self._chave_tentativas(username))

    def _configurar_sessao_persistente(self, request):
        """Configura sessão para durar mais tempo"""
        request.session.set_expiry(86400 * 30)  # 30 dias


# Instância global do serviço
auth_service = AuthenticationService()


def principal_required(view_func):
    """
    Decorator para views da API: resolve o principal e o passa como
    segundo argumento (NotAuthenticated vira 401 no middleware)
    """

    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        principal = auth_service.current_principal(request)
        return view_func(request, principal, *args, **kwargs)

    return _wrapped_view
