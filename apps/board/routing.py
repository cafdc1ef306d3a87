# apps/board/routing.py

from django.urls import re_path
from . import consumers

# Rotas WebSocket para a aplicação board
websocket_urlpatterns = [
    # Tópico board:<id> - atualizações em tempo real de um board
    re_path(r'ws/board/(?P<board_id>\d+)/$', consumers.BoardConsumer.as_asgi()),

    # Tópico boards - criação/edição/remoção de boards
    re_path(r'ws/boards/$', consumers.BoardsConsumer.as_asgi()),
]
