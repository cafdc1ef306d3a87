# apps/board/urls.py

from django.urls import path
from . import views

app_name = 'board'

urlpatterns = [
    # Boards
    path('boards', views.create_board, name='create_board'),
    path('boards/<int:board_id>', views.board_detail, name='board_detail'),
    path('boards/workspace/<int:workspace_id>', views.boards_in_workspace, name='boards_in_workspace'),

    # Listas
    path('lists', views.create_list, name='create_list'),
    path('lists/<int:list_id>', views.list_detail, name='list_detail'),
    path('lists/board/<int:board_id>', views.lists_in_board, name='lists_in_board'),

    # Cards
    path('cards', views.create_card, name='create_card'),
    path('cards/<int:card_id>', views.card_detail, name='card_detail'),
    path('cards/<int:card_id>/move', views.move_card, name='move_card'),
    path('cards/list/<int:list_id>', views.cards_in_list, name='cards_in_list'),
]
