# apps/board/consumers.py

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings
from django.utils import timezone

from apps.core.exceptions import NotFound
from apps.core.permissions import Action, board_permissions
from apps.core.serializers import board_to_dict
from apps.core.store import entity_store

from .dispatcher import BOARDS_TOPIC, EventType, board_topic, group_name

logger = logging.getLogger(__name__)


def get_timestamp():
    """Timestamp atual em formato ISO"""
    return timezone.now().isoformat()


class BoardSubscriptionMixin:
    """Comportamento comum aos assinantes de tópicos de board"""

    def principal_is_active(self):
        user = self.scope.get('user')
        return user is not None and user.is_authenticated and not getattr(user, 'is_deleted', True)

    async def send_json(self, payload):
        await self.send(text_data=json.dumps(payload))

    async def handle_ping(self):
        await self.send_json({'type': 'pong', 'timestamp': get_timestamp()})

    async def board_event(self, event):
        """Handler do channel layer (type 'board.event')"""
        await self.send_json(event['message'])


class BoardConsumer(BoardSubscriptionMixin, AsyncWebsocketConsumer):
    """
    Assinatura do tópico board:<id>

    O Access Gate é consultado antes do accept; sem acesso a conexão é
    recusada. Mensagens do cliente:
    - ping       -> pong
    - sync_board -> projeção completa do board (usada após reconectar)
    """

    async def connect(self):
        self.board_id = int(self.scope['url_route']['kwargs']['board_id'])
        self.user = self.scope.get('user')

        if not self.principal_is_active():
            logger.warning("❌ Conexão WebSocket rejeitada - usuário não autenticado")
            await self.close()
            return

        if not await self.check_board_access():
            logger.warning(
                f"❌ Conexão WebSocket rejeitada - {self.user.username} sem acesso ao board {self.board_id}"
            )
            await self.close()
            return

        self.board_group_name = group_name(board_topic(self.board_id))
        await self.channel_layer.group_add(self.board_group_name, self.channel_name)
        await self.accept()

        await self.send_json({
            'type': 'connected',
            'boardId': self.board_id,
            'heartbeatInterval': getattr(settings, 'KANBAN_WS_HEARTBEAT_INTERVAL', 30),
            'timestamp': get_timestamp(),
        })
        logger.info(f"✅ WebSocket conectado - {self.user.username} no board {self.board_id}")

    async def disconnect(self, close_code):
        if hasattr(self, 'board_group_name'):
            await self.channel_layer.group_discard(self.board_group_name, self.channel_name)
            logger.info(f"🔌 WebSocket desconectado - {self.user.username} do board {self.board_id}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or '')
        except json.JSONDecodeError:
            logger.error(f"❌ JSON inválido recebido via WebSocket de {self.user.username}")
            await self.send_json({'type': 'error', 'message': 'malformed JSON'})
            return

        message_type = data.get('type') if isinstance(data, dict) else None

        if message_type == 'ping':
            await self.handle_ping()

        elif message_type == 'sync_board':
            board_data = await self.get_board_state()
            if board_data is None:
                # Acesso revogado ou board removido desde a conexão
                await self.close()
                return
            await self.send_json({
                'type': 'board_sync',
                'board': board_data,
                'timestamp': get_timestamp(),
            })

        else:
            await self.send_json({'type': 'error', 'message': f'unknown message type {message_type!r}'})

    # === Métodos auxiliares ===

    @database_sync_to_async
    def check_board_access(self):
        try:
            board = entity_store.load_board(self.board_id)
        except NotFound:
            return False
        return bool(board_permissions.authorize(self.user, board, Action.READ))

    @database_sync_to_async
    def get_board_state(self):
        """Estado atual do board, ou None se o usuário perdeu o acesso"""
        try:
            board = entity_store.board_snapshot(self.board_id)
        except NotFound:
            return None
        if board.workspace.is_deleted or not board_permissions.authorize(self.user, board, Action.READ):
            return None
        return board_to_dict(board, include_lists=True)


class BoardsConsumer(BoardSubscriptionMixin, AsyncWebsocketConsumer):
    """
    Assinatura do tópico global `boards` (ciclo de vida de boards)

    BOARD_CREATED/UPDATED só chegam a quem tem acesso ao board; BOARD_DELETED
    carrega apenas o id e vai para todos.
    """

    async def connect(self):
        self.user = self.scope.get('user')

        if not self.principal_is_active():
            await self.close()
            return

        self.boards_group_name = group_name(BOARDS_TOPIC)
        await self.channel_layer.group_add(self.boards_group_name, self.channel_name)
        await self.accept()
        logger.info(f"🔔 Atualizações de boards conectadas para {self.user.username}")

    async def disconnect(self, close_code):
        if hasattr(self, 'boards_group_name'):
            await self.channel_layer.group_discard(self.boards_group_name, self.channel_name)
            logger.info(f"🔕 Atualizações de boards desconectadas para {self.user.username}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or '')
        except json.JSONDecodeError:
            await self.send_json({'type': 'error', 'message': 'malformed JSON'})
            return

        if isinstance(data, dict) and data.get('type') == 'ping':
            await self.handle_ping()

    async def board_event(self, event):
        message = event['message']
        if message['type'] != EventType.BOARD_DELETED.value:
            if not await self.can_see_board(message['boardId']):
                return
        await self.send_json(message)

    @database_sync_to_async
    def can_see_board(self, board_id):
        try:
            board = entity_store.load_board(board_id)
        except NotFound:
            return False
        return bool(board_permissions.authorize(self.user, board, Action.READ))
