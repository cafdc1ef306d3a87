# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html

from .models import (
    Board, BoardList, BoardMember, Card, User, Workspace, WorkspaceMember
)


class SoftDeleteAdminMixin:
    """O admin enxerga também os registros com soft delete"""

    def get_queryset(self, request):
        qs = self.model.all_objects.get_queryset()
        ordering = self.get_ordering(request)
        if ordering:
            qs = qs.order_by(*ordering)
        return qs


@admin.register(User)
class UserAdmin(SoftDeleteAdminMixin, BaseUserAdmin):
    """Admin customizado para o modelo User"""

    list_display = [
        'username', 'email', 'full_name', 'role_badge',
        'is_deleted', 'date_joined'
    ]
    list_filter = ['role', 'is_deleted', 'is_staff', 'date_joined']
    search_fields = ['username', 'full_name', 'email']
    ordering = ['-date_joined']

    # Adicionar campos customizados ao formulário
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Kanban', {
            'fields': ('full_name', 'role', 'is_deleted')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Kanban', {
            'fields': ('full_name', 'role')
        }),
    )

    def role_badge(self, obj):
        """Exibe o papel global com badge colorido"""
        cores = {
            User.Role.ADMIN: '#EF4444',  # vermelho
            User.Role.USER: '#3B82F6',  # azul
        }
        cor = cores.get(obj.role, '#6B7280')
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cor, obj.get_role_display()
        )

    role_badge.short_description = 'Papel'


class WorkspaceMemberInline(admin.TabularInline):
    model = WorkspaceMember
    extra = 0
    fields = ['user', 'role', 'is_deleted']


@admin.register(Workspace)
class WorkspaceAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    """Admin para workspaces"""

    list_display = ['name', 'owner', 'members_count', 'boards_count', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'created_at']
    search_fields = ['name', 'description', 'owner__username']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [WorkspaceMemberInline]

    def members_count(self, obj):
        return obj.members.count()

    members_count.short_description = 'Membros'

    def boards_count(self, obj):
        return obj.boards.count()

    boards_count.short_description = 'Boards'


class BoardListInline(admin.TabularInline):
    model = BoardList
    extra = 0
    fields = ['name', 'position']
    readonly_fields = ['position']
    ordering = ['position', 'id']

    # posição só muda pela API (mantém a lista contígua)
    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Board)
class BoardAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    """Admin para boards Kanban"""

    list_display = ['name', 'workspace', 'created_by', 'lists_count', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'created_at', 'workspace']
    search_fields = ['name', 'description', 'workspace__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [BoardListInline]

    def lists_count(self, obj):
        """Conta listas ativas do board"""
        return obj.lists.count()

    lists_count.short_description = 'Listas'


@admin.register(BoardMember)
class BoardMemberAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ['board', 'user', 'is_deleted', 'created_at']
    list_filter = ['is_deleted']
    search_fields = ['board__name', 'user__username']


@admin.register(BoardList)
class BoardListAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    """
    Posições são mantidas pelo Mutation Coordinator; aqui ficam só
    para leitura (use `manage.py verify_positions --fix` para corrigir)
    """

    list_display = ['name', 'board', 'position', 'is_deleted']
    list_filter = ['is_deleted', 'board']
    search_fields = ['name', 'board__name']
    readonly_fields = ['position', 'created_at', 'updated_at']


@admin.register(Card)
class CardAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    """Admin para cards"""

    list_display = [
        'title', 'board_list', 'position', 'priority_badge',
        'created_by', 'due_date', 'is_deleted'
    ]
    list_filter = ['priority', 'is_deleted', 'created_at']
    search_fields = ['title', 'description', 'board_list__name']
    filter_horizontal = ['assignees']
    readonly_fields = ['position', 'created_at', 'updated_at']

    def priority_badge(self, obj):
        """Prioridade com badge colorido"""
        cores = {
            Card.Priority.LOW: '#10B981',  # verde
            Card.Priority.MEDIUM: '#F59E0B',  # amarelo
            Card.Priority.HIGH: '#EF4444',  # vermelho
        }
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cores.get(obj.priority, '#6B7280'), obj.get_priority_display()
        )

    priority_badge.short_description = 'Prioridade'
