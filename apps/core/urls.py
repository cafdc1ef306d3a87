# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # === AUTENTICAÇÃO ===
    path('auth/login', views.login_view, name='login'),
    path('auth/register', views.register_view, name='register'),
    path('auth/logout', views.logout_view, name='logout'),
    path('auth/me', views.me_view, name='me'),

    # === WORKSPACES ===
    path('workspaces', views.workspaces, name='workspaces'),
    path('workspaces/<int:workspace_id>', views.workspace_detail, name='workspace_detail'),
    path('workspaces/<int:workspace_id>/members', views.workspace_members, name='workspace_members'),
    path(
        'workspaces/<int:workspace_id>/members/<int:user_id>',
        views.workspace_member_detail,
        name='workspace_member_detail'
    ),

    # === MEMBROS DO BOARD ===
    path('boards/<int:board_id>/members', views.board_members, name='board_members'),
    path(
        'boards/<int:board_id>/members/<int:user_id>',
        views.board_member_detail,
        name='board_member_detail'
    ),
    path('users/board/<int:board_id>', views.board_users, name='board_users'),

    # === ADMINISTRAÇÃO ===
    path('admin/statistics', views.admin_statistics, name='admin_statistics'),
    path('admin/users', views.admin_users, name='admin_users'),
    path('admin/users/<int:user_id>/role', views.admin_user_role, name='admin_user_role'),
    path(
        'admin/users/<int:user_id>/toggle-status',
        views.admin_toggle_status,
        name='admin_toggle_status'
    ),

    # === MONITORAMENTO ===
    path('health', views.health_check, name='health'),
]
