"""
Management command to seed the national subject catalog for grades 7-12.

Each subject gets one row per grade it is taught in, with that grade's
coefficient. Grade 12 subjects are split into science and social tracks.

Usage:
    python manage.py seed_subjects
    python manage.py seed_subjects --force   # also deactivate subjects not in the table
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from academics.models import Subject
from core.choices import Track


# (base code, Khmer name, English name, max score, {grade key: coefficient})
# Grade keys are '7'..'11', or '12-science' / '12-social' for the tracked grade.
SUBJECT_TABLE = [
    ('WRITING', 'តែងសេចក្តី', 'Writing', 60,
     {'7': '1.2', '8': '1.2', '9': '1.2'}),
    ('DICTATION', 'សរសេរតាមអាន', 'Dictation', 40,
     {'7': '0.8', '8': '0.8', '9': '0.8'}),
    ('MATH', 'គណិតវិទ្យា', 'Mathematics', 100,
     {'7': '2', '8': '2', '9': '2', '10': '3', '11': '2.5', '12-science': '2.5', '12-social': '1.5'}),
    ('PHY', 'រូបវិទ្យា', 'Physics', 50,
     {'7': '1', '8': '1', '9': '0.7', '10': '1', '11': '1.5', '12-science': '1.5', '12-social': '1'}),
    ('CHEM', 'គីមីវិទ្យា', 'Chemistry', 50,
     {'7': '1', '8': '1', '9': '0.5', '10': '0.74', '11': '1.5', '12-science': '1.5', '12-social': '1'}),
    ('BIO', 'ជីវវិទ្យា', 'Biology', 50,
     {'7': '1', '8': '1', '9': '0.7', '10': '0.76', '11': '1.5', '12-science': '1.5', '12-social': '1'}),
    ('EARTH', 'ផែនដីវិទ្យា', 'Earth Science', 50,
     {'7': '1', '8': '1', '9': '0.5', '10': '0.5', '11': '1', '12-science': '1', '12-social': '1'}),
    ('MORAL', 'សីលធម៌-ពលរដ្ឋវិជ្ជា', 'Moral Education', 50,
     {'7': '1', '8': '1', '9': '0.7', '10': '0.76', '11': '1', '12-science': '1', '12-social': '1.5'}),
    ('GEO', 'ភូមិវិទ្យា', 'Geography', 50,
     {'7': '1', '8': '1', '9': '0.64', '10': '0.76', '11': '1', '12-science': '1', '12-social': '1.5'}),
    ('HIST', 'ប្រវត្តិវិទ្យា', 'History', 50,
     {'7': '1', '8': '1', '9': '0.66', '10': '0.74', '11': '1', '12-science': '1', '12-social': '1.5'}),
    ('KHM', 'អក្សរសាស្ត្រខ្មែរ', 'Khmer Literature', 100,
     {'10': '3', '11': '1.5', '12-science': '1.5', '12-social': '2.5'}),
    ('ENG', 'ភាសាអង់គ្លេស', 'English', 50,
     {'7': '1', '8': '1', '9': '1', '10': '2', '11': '1', '12-science': '1', '12-social': '1'}),
    ('SPORTS', 'កីឡា', 'Physical Education', 50,
     {'7': '1', '8': '1', '9': '1', '10': '1', '11': '1'}),
    ('AGRI', 'កសិកម្ម', 'Agriculture', 50,
     {'7': '1', '8': '1', '9': '1', '10': '1', '11': '1'}),
    ('ICT', 'ព័ត៌មានវិទ្យា', 'ICT', 50,
     {'7': '1', '8': '1', '9': '1', '10': '1', '11': '1', '12-science': '1', '12-social': '1'}),
]


def catalog_rows():
    """Expand SUBJECT_TABLE into one dict per (subject, grade, track)."""
    for base_code, name_kh, name_en, max_score, coefficients in SUBJECT_TABLE:
        for grade_key, coefficient in coefficients.items():
            grade, _, track = grade_key.partition('-')
            code = f'{base_code}-G{grade}'
            if track:
                code = f'{code}-{track.upper()}'
            yield {
                'code': code,
                'name_kh': name_kh,
                'name_en': name_en,
                'grade': int(grade),
                'track': Track(track) if track else None,
                'max_score': max_score,
                'coefficient': Decimal(coefficient),
            }


class Command(BaseCommand):
    help = 'Seed the grade 7-12 subject catalog with coefficients and max scores'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Deactivate subjects that are not in the seed table',
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            created, updated, deactivated = self.seed_subjects(options['force'])

        self.stdout.write(self.style.SUCCESS(
            f'Seeded subjects: {created} created, {updated} updated, {deactivated} deactivated'
        ))

    def seed_subjects(self, force):
        existing = {s.code: s for s in Subject.objects.all()}
        seeded_codes = set()
        to_create = []
        to_update = []

        for row in catalog_rows():
            seeded_codes.add(row['code'])
            subject = existing.get(row['code'])
            if subject is None:
                to_create.append(Subject(**row))
                self.stdout.write(f'  Created: {row["name_kh"]} ({row["code"]}) x{row["coefficient"]}')
                continue

            changed = False
            for field in ('name_kh', 'name_en', 'grade', 'track', 'max_score', 'coefficient'):
                if getattr(subject, field) != row[field]:
                    setattr(subject, field, row[field])
                    changed = True
            if not subject.is_active:
                subject.is_active = True
                changed = True
            if changed:
                to_update.append(subject)
                self.stdout.write(f'  Updated: {row["name_kh"]} ({row["code"]}) x{row["coefficient"]}')

        if to_create:
            Subject.objects.bulk_create(to_create)
        if to_update:
            Subject.objects.bulk_update(
                to_update,
                ['name_kh', 'name_en', 'grade', 'track', 'max_score', 'coefficient', 'is_active']
            )

        deactivated = 0
        if force:
            deactivated = Subject.objects.filter(is_active=True).exclude(
                code__in=seeded_codes
            ).update(is_active=False)

        return len(to_create), len(to_update), deactivated
