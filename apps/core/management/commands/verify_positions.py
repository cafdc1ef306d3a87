# apps/core/management/commands/verify_positions.py

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from apps.board import positions
from apps.core.models import Board, BoardList
from apps.core.store import entity_store


class Command(BaseCommand):
    help = 'Confere se listas e cards têm posições contíguas 0..n-1 (e corrige com --fix)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Renumera as sequências inválidas (sob os mesmos locks das mutações)',
        )

    def handle(self, *args, **options):
        fix = options['fix']
        self.stdout.write('🔍 Verificando posições de listas e cards...')

        problems = 0
        boards = Board.objects.filter(workspace__is_deleted=False).order_by('pk')
        for board in boards:
            if not positions.is_contiguous(self._pairs(entity_store.list_sequence(board.pk))):
                problems += 1
                self._report(f'board {board.pk} ({board.name}): listas fora de sequência', fix)
                if fix:
                    self._fix_lists(board.pk)

        board_lists = (
            BoardList.objects
            .filter(board__is_deleted=False, board__workspace__is_deleted=False)
            .order_by('pk')
        )
        for board_list in board_lists:
            if not positions.is_contiguous(self._pairs(entity_store.card_sequence(board_list.pk))):
                problems += 1
                self._report(f'lista {board_list.pk} ({board_list.name}): cards fora de sequência', fix)
                if fix:
                    self._fix_cards(board_list.pk)

        if problems == 0:
            self.stdout.write(self.style.SUCCESS('✅ Todas as sequências estão contíguas'))
        elif fix:
            self.stdout.write(self.style.SUCCESS(f'✅ {problems} sequência(s) corrigida(s)'))
        else:
            raise CommandError(f'{problems} sequência(s) inválida(s); execute com --fix para corrigir')

    def _report(self, message, fix):
        style = self.style.WARNING if fix else self.style.ERROR
        self.stdout.write(style(f'  ⚠️  {message}'))

    @staticmethod
    def _pairs(rows):
        return [(row.pk, row.position) for row in rows]

    @transaction.atomic
    def _fix_lists(self, board_id):
        entity_store.load_board(board_id, for_update=True)
        self._renumber(entity_store.list_sequence(board_id))

    @transaction.atomic
    def _fix_cards(self, list_id):
        entity_store.lock_lists([list_id])
        self._renumber(entity_store.card_sequence(list_id))

    def _renumber(self, rows):
        by_id = {row.pk: row for row in rows}
        changed = positions.changed_positions(self._pairs(rows), positions.normalize(self._pairs(rows)))

        now = timezone.now()
        for item_id, position in changed.items():
            by_id[item_id].position = position
            by_id[item_id].updated_at = now
        entity_store.save_all([by_id[item_id] for item_id in changed], ['position', 'updated_at'])
