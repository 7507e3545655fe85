"""
Management command to rebuild monthly summaries and class ranks.

Usage:
    python manage.py recalculate_summaries --month មករា --year 2025 --class-id 3
    python manage.py recalculate_summaries --month 1 --year 2025 --grade 12
"""
from django.core.management.base import BaseCommand, CommandError

from academics.models import Class
from gradebook.exceptions import InvalidPeriod
from gradebook.storage import DjangoGradeStore
from gradebook.summaries import recalculate_class_summaries


class Command(BaseCommand):
    help = 'Recalculate student monthly summaries and class ranks'

    def add_arguments(self, parser):
        parser.add_argument('--month', required=True, help='Khmer/English month name or number')
        parser.add_argument('--year', required=True, type=int)
        scope = parser.add_mutually_exclusive_group(required=True)
        scope.add_argument('--class-id', type=int, help='Single class')
        scope.add_argument('--grade', type=int, help='Every active class of a grade level')

    def handle(self, *args, **options):
        store = DjangoGradeStore()

        if options['class_id']:
            class_ids = [options['class_id']]
        else:
            class_ids = [c.pk for c in store.list_classes(options['grade'])]
            if not class_ids:
                raise CommandError(f'No active classes for grade {options["grade"]}')

        total = 0
        for class_id in class_ids:
            try:
                summaries = recalculate_class_summaries(
                    store, class_id, options['month'], options['year']
                )
            except Class.DoesNotExist:
                raise CommandError(f'Class {class_id} does not exist')
            except InvalidPeriod as e:
                raise CommandError(str(e))
            total += len(summaries)
            self.stdout.write(f'  Class {class_id}: {len(summaries)} summaries')

        self.stdout.write(self.style.SUCCESS(
            f'Recalculated {total} summaries across {len(class_ids)} classes'
        ))
