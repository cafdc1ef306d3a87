# apps/board/dispatcher.py

"""
Change Dispatcher - transmissão de mudanças em tempo real

Cada mutação confirmada vira um BoardEvent, publicado nos grupos do
channel layer:
- `board:<id>`  -> todos os eventos do board (listas, cards, ciclo de vida)
- `boards`      -> apenas ciclo de vida de boards (BOARD_*), para manter
                   vivas as listagens de workspace sem assinar cada board

Entrega best-effort, no máximo uma vez por assinante, na ordem de
publicação dentro de um mesmo tópico. Não há replay: quem reconecta pede
o estado completo (`sync_board` no consumer).
"""

import enum
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, List, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

BOARDS_TOPIC = 'boards'

# Tipo do handler no consumer (board.event -> BoardConsumer.board_event)
HANDLER_TYPE = 'board.event'


class EventType(str, enum.Enum):
    BOARD_CREATED = 'BOARD_CREATED'
    BOARD_UPDATED = 'BOARD_UPDATED'
    BOARD_DELETED = 'BOARD_DELETED'
    LIST_CREATED = 'LIST_CREATED'
    LIST_UPDATED = 'LIST_UPDATED'
    LIST_DELETED = 'LIST_DELETED'
    CARD_CREATED = 'CARD_CREATED'
    CARD_UPDATED = 'CARD_UPDATED'
    CARD_MOVED = 'CARD_MOVED'
    CARD_DELETED = 'CARD_DELETED'


BOARD_LIFECYCLE_EVENTS = {
    EventType.BOARD_CREATED,
    EventType.BOARD_UPDATED,
    EventType.BOARD_DELETED,
}


def board_topic(board_id) -> str:
    return f'board:{board_id}'


def group_name(topic: str) -> str:
    """Grupos do Channels não aceitam ':' (board:42 -> board_42)"""
    return topic.replace(':', '_')


@dataclass
class BoardEvent:
    """
    Evento desnormalizado: o assinante consegue renderizar a mudança sem
    buscar nada no servidor
    """

    type: EventType
    board_id: int
    actor_id: Optional[int] = None
    actor_name: Optional[str] = None
    board: Optional[dict] = None
    board_list: Optional[dict] = None
    card: Optional[dict] = None
    previous_list_id: Optional[int] = None
    card_id: Optional[int] = None
    list_id: Optional[int] = None
    # {'lists': {id: pos}, 'cards': {id: pos}} - irmãos que mudaram de posição
    positions: Dict[str, Dict[int, int]] = field(default_factory=dict)

    def to_message(self) -> dict:
        return {
            'type': self.type.value,
            'boardId': self.board_id,
            'board': self.board,
            'list': self.board_list,
            'card': self.card,
            'previousListId': self.previous_list_id,
            'cardId': self.card_id,
            'listId': self.list_id,
            'lastModifiedBy': self.actor_id,
            'lastModifiedByName': self.actor_name,
            'positions': {
                kind: {str(item_id): position for item_id, position in moved.items()}
                for kind, moved in self.positions.items()
            },
        }


class ChangeDispatcher:
    """Publica BoardEvents no channel layer"""

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    @staticmethod
    def topics_for(board_id, event: BoardEvent) -> List[str]:
        topics = [board_topic(board_id)]
        if event.type in BOARD_LIFECYCLE_EVENTS:
            topics.append(BOARDS_TOPIC)
        return topics

    def publish(self, board_id, event: BoardEvent) -> None:
        """
        Entrega `event` a todos os assinantes dos tópicos do board

        Falha no channel layer é registrada e engolida: a mutação já foi
        confirmada e o cliente recupera o estado ao reconectar.
        """
        layer = self.channel_layer
        if layer is None:
            logger.warning(f"⚠️  Channel layer não configurado - {event.type.value} não transmitido")
            return

        message = event.to_message()
        for topic in self.topics_for(board_id, event):
            try:
                async_to_sync(layer.group_send)(
                    group_name(topic),
                    {
                        'type': HANDLER_TYPE,
                        'topic': topic,
                        'message': message,
                    }
                )
            except Exception:
                logger.exception(f"❌ Falha ao transmitir {event.type.value} em {topic}")
            else:
                logger.debug(f"📡 {event.type.value} publicado em {topic}")

    def publish_on_commit(self, event: BoardEvent) -> None:
        """
        Agenda a publicação para depois do commit

        Se a transação for desfeita, o callback é descartado e nada é
        transmitido.
        """
        transaction.on_commit(partial(self.publish, event.board_id, event))


# Instância global
change_dispatcher = ChangeDispatcher()
