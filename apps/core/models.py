# apps/core/models.py

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


# === TOMBSTONE CONVENTION ===

class ActiveManager(models.Manager):
    """
    Manager padrão de todas as entidades com soft delete

    Registros marcados com is_deleted ficam fora de toda leitura padrão.
    Para enxergá-los use explicitamente `all_objects`.
    """

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)


class ActiveUserManager(UserManager):
    """UserManager que também esconde usuários desativados (tombstone)"""

    def get_queryset(self):
        return super().get_queryset().filter(is_deleted=False)

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        # Superusuário do Django também é ADMIN do Kanban
        extra_fields.setdefault('role', 'ADMIN')
        return super().create_superuser(username, email, password, **extra_fields)


class SoftDeleteModel(models.Model):
    """
    Base abstrata para entidades que nunca são apagadas fisicamente
    """

    is_deleted = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    def soft_delete(self):
        """Marca como removido sem tocar nos demais campos (posição inclusive)"""
        self.is_deleted = True
        self.save(update_fields=['is_deleted', 'updated_at'])


# === USUÁRIOS ===

class User(AbstractUser):
    """
    Usuário do sistema

    O papel global (role) decide se o usuário é administrador do sistema;
    o acesso a workspaces e boards vem das tabelas de membros.
    """

    class Role(models.TextChoices):
        ADMIN = 'ADMIN', 'Administrator'
        USER = 'USER', 'User'

    full_name = models.CharField(max_length=100, blank=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)
    is_deleted = models.BooleanField(default=False, db_index=True)

    objects = ActiveUserManager()
    all_objects = UserManager()

    class Meta:
        db_table = 'users'

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    def __str__(self):
        return self.full_name or self.username


# === WORKSPACES ===

class Workspace(SoftDeleteModel):
    """Workspace - agregador de boards e de membros"""

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='owned_workspaces'
    )

    class Meta:
        db_table = 'workspaces'
        ordering = ['name']

    def __str__(self):
        return self.name


class WorkspaceMember(SoftDeleteModel):
    """Vínculo de um usuário com um workspace"""

    class Role(models.TextChoices):
        OWNER = 'OWNER', 'Owner'
        ADMIN = 'ADMIN', 'Admin'
        MEMBER = 'MEMBER', 'Member'

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='members'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='workspace_memberships'
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)

    class Meta:
        db_table = 'workspace_members'
        indexes = [
            models.Index(fields=['workspace', 'user'], name='ws_member_ws_user_idx'),
        ]

    @property
    def can_manage(self):
        return self.role in (self.Role.OWNER, self.Role.ADMIN)

    def __str__(self):
        return f"{self.user} @ {self.workspace} ({self.role})"


# === BOARDS ===

class Board(SoftDeleteModel):
    """Quadro Kanban de um workspace"""

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='boards'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_boards'
    )

    class Meta:
        db_table = 'boards'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.workspace_id})"


class BoardMember(SoftDeleteModel):
    """Atribuição direta de um usuário a um board"""

    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='members'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='board_memberships'
    )

    class Meta:
        db_table = 'board_members'
        indexes = [
            models.Index(fields=['board', 'user'], name='board_member_board_user_idx'),
        ]

    def __str__(self):
        return f"{self.user} @ {self.board}"


class BoardList(SoftDeleteModel):
    """Lista (coluna) ordenada dentro de um board"""

    name = models.CharField(max_length=100)
    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='lists'
    )
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'lists'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['board', 'position'], name='list_board_position_idx'),
        ]

    def __str__(self):
        return f"{self.name} #{self.position}"


class Card(SoftDeleteModel):
    """Card ordenado dentro de uma lista"""

    class Priority(models.TextChoices):
        LOW = 'LOW', 'Low'
        MEDIUM = 'MEDIUM', 'Medium'
        HIGH = 'HIGH', 'High'

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    board_list = models.ForeignKey(
        BoardList,
        on_delete=models.CASCADE,
        related_name='cards'
    )
    position = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='created_cards'
    )
    assignees = models.ManyToManyField(
        User,
        blank=True,
        related_name='assigned_cards'
    )
    last_modified_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='modified_cards'
    )
    due_date = models.DateTimeField(null=True, blank=True)
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM
    )

    class Meta:
        db_table = 'cards'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['board_list', 'position'], name='card_list_position_idx'),
        ]

    def __str__(self):
        return self.title
