"""
Tests for the academics app.

Focuses on:
- Subject catalog seeding (codes, tracks, coefficients)
- Re-running the seed command without duplicating rows
- Subject display-name helpers
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from academics.management.commands.seed_subjects import catalog_rows
from academics.models import Class, Subject
from core.choices import Track


# =============================================================================
# SEED SUBJECTS COMMAND
# =============================================================================

class SeedSubjectsTest(TestCase):
    """Tests for the seed_subjects management command."""

    def seed(self, *args):
        out = StringIO()
        call_command('seed_subjects', *args, stdout=out)
        return out.getvalue()

    def test_creates_catalog(self):
        """Every table row becomes one subject."""
        output = self.seed()
        expected = len(list(catalog_rows()))

        self.assertEqual(Subject.objects.count(), expected)
        self.assertIn(f'{expected} created, 0 updated, 0 deactivated', output)

    def test_tracked_codes(self):
        """Grade 12 subjects are split per track, junior grades are not."""
        self.seed()

        science = Subject.objects.get(code='MATH-G12-SCIENCE')
        self.assertEqual(science.track, Track.SCIENCE)
        self.assertEqual(science.coefficient, Decimal('2.50'))
        self.assertEqual(science.base_code, 'MATH')

        social = Subject.objects.get(code='MATH-G12-SOCIAL')
        self.assertEqual(social.coefficient, Decimal('1.50'))

        junior = Subject.objects.get(code='MATH-G7')
        self.assertIsNone(junior.track)
        self.assertEqual(junior.grade, 7)

    def test_idempotent(self):
        """Running the seed twice leaves the catalog unchanged."""
        self.seed()
        count = Subject.objects.count()

        output = self.seed()

        self.assertEqual(Subject.objects.count(), count)
        self.assertIn('0 created, 0 updated, 0 deactivated', output)

    def test_restores_changed_subject(self):
        self.seed()
        Subject.objects.filter(code='ENG-G10').update(coefficient=Decimal('5'), is_active=False)

        output = self.seed()

        subject = Subject.objects.get(code='ENG-G10')
        self.assertEqual(subject.coefficient, Decimal('2.00'))
        self.assertTrue(subject.is_active)
        self.assertIn('0 created, 1 updated', output)

    def test_force_deactivates_extras(self):
        """Only --force touches subjects missing from the table."""
        extra = Subject.objects.create(code='LATIN-G10', name_kh='ឡាតាំង', grade=10)

        self.seed()
        extra.refresh_from_db()
        self.assertTrue(extra.is_active)

        output = self.seed('--force')
        extra.refresh_from_db()
        self.assertFalse(extra.is_active)
        self.assertIn('1 deactivated', output)


# =============================================================================
# MODEL HELPERS
# =============================================================================

class ModelHelperTest(TestCase):

    def test_base_code(self):
        subject = Subject(code='PHY-G12-SCIENCE')
        self.assertEqual(subject.base_code, 'PHY')
        self.assertEqual(Subject(code='ICT-G9').base_code, 'ICT')

    def test_class_str(self):
        klass = Class.objects.create(name='12 Science B', grade=12, track=Track.SCIENCE)
        self.assertEqual(str(klass), '12 Science B')
