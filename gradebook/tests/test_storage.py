from datetime import date
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from academics.models import AttendanceRecord, Class, Subject
from gradebook.models import GradeRecord, StudentMonthlySummary
from gradebook.reconciler import reconcile
from gradebook.storage import DjangoGradeStore
from gradebook.summaries import recalculate_class_summaries
from students.models import Student


class StoreFixture(TestCase):
    """A grade 12 science class with two students and three subjects."""

    @classmethod
    def setUpTestData(cls):
        cls.klass = Class.objects.create(name='12A', grade=12, track='science')
        cls.other_class = Class.objects.create(name='12B', grade=12, track='social')
        cls.math = Subject.objects.create(
            code='MATH-G12-SCIENCE', name_kh='គណិតវិទ្យា', grade=12,
            track='science', max_score=100, coefficient=Decimal('2')
        )
        cls.khmer = Subject.objects.create(
            code='KHM-G12', name_kh='ភាសាខ្មែរ', grade=12, track='common',
            max_score=100, coefficient=Decimal('1')
        )
        cls.social = Subject.objects.create(
            code='GEO-G12-SOCIAL', name_kh='ភូមិវិទ្យា', grade=12, track='social',
            max_score=50, coefficient=Decimal('1')
        )
        cls.sok = Student.objects.create(
            student_id='S001', first_name='Sok', last_name='Chea', gender='F', current_class=cls.klass
        )
        cls.dara = Student.objects.create(
            student_id='S002', first_name='Dara', last_name='Keo', gender='M', current_class=cls.klass
        )

    def setUp(self):
        self.store = DjangoGradeStore()


class DjangoGradeStoreTest(StoreFixture):
    """Tests for the ORM-backed store."""

    def test_catalog_lookups(self):
        self.assertEqual(self.store.get_class(self.klass.pk), self.klass)
        with self.assertRaises(Class.DoesNotExist):
            self.store.get_class(9999)

        self.assertEqual([c.name for c in self.store.list_classes(12)], ['12A', '12B'])
        self.assertEqual({s.pk for s in self.store.list_students([self.klass.pk])}, {self.sok.pk, self.dara.pk})

        self.social.is_active = False
        self.social.save()
        self.assertEqual(len(self.store.list_subjects(grade=12)), 2)
        self.assertEqual(len(self.store.list_subjects(grade=12, active_only=False)), 3)

    def test_create_drops_existing_keys(self):
        GradeRecord.objects.create(
            student=self.sok, subject=self.math, school_class=self.klass,
            month='មករា', month_number=1, year=2025, score=Decimal('10'), max_score=100
        )
        records = [
            GradeRecord(student=self.sok, subject=self.math, school_class=self.klass,
                        month='មករា', month_number=1, year=2025, score=Decimal('99'), max_score=100),
            GradeRecord(student=self.dara, subject=self.math, school_class=self.klass,
                        month='មករា', month_number=1, year=2025, score=Decimal('50'), max_score=100),
        ]

        inserted = self.store.create_grades(self.klass.pk, 'មករា', 2025, records)

        self.assertEqual(inserted, 1)
        self.assertEqual(GradeRecord.objects.count(), 2)
        self.assertEqual(GradeRecord.objects.get(student=self.sok).score, Decimal('10'))

    def test_existing_student_ids(self):
        self.dara.is_active = False
        self.dara.save()
        found = self.store.existing_student_ids([self.sok.pk, self.dara.pk, 99999])
        self.assertEqual(found, {self.sok.pk, self.dara.pk})

    def test_insert_count_ignores_concurrent_rows(self):
        """Rows another writer adds to the same period are not counted as ours."""
        original = GradeRecord.objects.bulk_create

        def racing_bulk_create(objs, **kwargs):
            GradeRecord.objects.create(
                student=self.sok, subject=self.khmer, school_class=self.klass,
                month='មករា', month_number=1, year=2025, score=Decimal('5'), max_score=100
            )
            return original(objs, **kwargs)

        records = [
            GradeRecord(student=self.sok, subject=self.math, school_class=self.klass,
                        month='មករា', month_number=1, year=2025, score=Decimal('70'), max_score=100),
            GradeRecord(student=self.dara, subject=self.khmer, school_class=self.klass,
                        month='មករា', month_number=1, year=2025, score=Decimal('60'), max_score=100),
        ]
        with patch.object(GradeRecord.objects, 'bulk_create', side_effect=racing_bulk_create):
            inserted = self.store.create_grades(self.klass.pk, 'មករា', 2025, records)

        self.assertEqual(inserted, 2)
        self.assertEqual(GradeRecord.objects.count(), 3)

    def test_find_grades_matches_exact_pairs(self):
        for student, subject in ((self.sok, self.math), (self.dara, self.khmer)):
            GradeRecord.objects.create(
                student=student, subject=subject, school_class=self.klass,
                month='មករា', month_number=1, year=2025, score=Decimal('10'), max_score=100
            )

        found = self.store.find_grades(
            self.klass.pk, 'មករា', 2025, [(self.sok.pk, self.khmer.pk), (self.dara.pk, self.khmer.pk)]
        )
        self.assertEqual(list(found), [(self.dara.pk, self.khmer.pk)])
        self.assertEqual(self.store.find_grades(self.klass.pk, 'មករា', 2025, []), {})

    def test_list_attendance(self):
        AttendanceRecord.objects.create(
            student=self.sok, class_assigned=self.klass, date=date(2025, 1, 6), status='ABSENT'
        )
        AttendanceRecord.objects.create(
            student=self.sok, class_assigned=self.klass, date=date(2025, 2, 6), status='ABSENT'
        )
        records = self.store.list_attendance(date(2025, 1, 1), date(2025, 1, 31), class_id=self.klass.pk)
        self.assertEqual(len(records), 1)

    def test_summaries_upsert_and_prune(self):
        def summary(student, average):
            return StudentMonthlySummary(
                student=student, school_class=self.klass, month='មករា',
                month_number=1, year=2025, average=Decimal(average)
            )

        self.store.save_summaries([summary(self.sok, '10'), summary(self.dara, '20')])
        self.store.save_summaries([summary(self.sok, '30')])
        self.assertEqual(StudentMonthlySummary.objects.count(), 2)
        self.assertEqual(StudentMonthlySummary.objects.get(student=self.sok).average, Decimal('30.00'))

        deleted = self.store.delete_summaries(self.klass.pk, 'មករា', 2025, [self.sok.pk])
        self.assertEqual(deleted, 1)
        self.assertEqual(list(StudentMonthlySummary.objects.values_list('student_id', flat=True)), [self.sok.pk])


class ReconcileDatabaseTest(StoreFixture):
    """End-to-end reconciliation against the database."""

    def rows(self, math_score):
        return [
            {'student_id': self.sok.pk, 'subject_id': self.math.pk, 'score': math_score},
            {'student_id': self.sok.pk, 'subject_id': self.khmer.pk, 'score': 80},
            {'student_id': str(self.dara.pk), 'subject_id': str(self.math.pk), 'score': '60'},
        ]

    def test_idempotent_and_updates(self):
        first = reconcile(self.store, self.klass.pk, 'មករា', 2025, self.rows(90))
        self.assertEqual((first.created, first.updated, first.skipped), (3, 0, 0))

        second = reconcile(self.store, self.klass.pk, 'January', 2025, self.rows(90))
        self.assertEqual((second.created, second.updated, second.skipped), (0, 0, 3))
        self.assertEqual(GradeRecord.objects.count(), 3)

        third = reconcile(self.store, self.klass.pk, 1, 2025, self.rows(95))
        self.assertEqual((third.created, third.updated, third.skipped), (0, 1, 2))

        record = GradeRecord.objects.get(student=self.sok, subject=self.math)
        self.assertEqual(record.score, Decimal('95.00'))
        self.assertEqual(record.percentage, Decimal('95.00'))
        self.assertEqual(record.weighted_score, Decimal('190.00'))
        self.assertEqual(record.month_number, 1)

    def test_summaries_from_database(self):
        reconcile(self.store, self.klass.pk, 'មករា', 2025, self.rows(90))
        summaries = recalculate_class_summaries(self.store, self.klass.pk, 'មករា', 2025)

        self.assertEqual([s.student_id for s in summaries], [self.sok.pk, self.dara.pk])
        stored = StudentMonthlySummary.objects.get(student=self.sok)
        self.assertEqual(stored.total_coefficient, Decimal('3.00'))
        self.assertEqual(stored.average, Decimal('56.67'))
        self.assertEqual(stored.class_rank, 1)
        self.assertEqual(StudentMonthlySummary.objects.get(student=self.dara).class_rank, 2)

    def test_bad_ids_do_not_abort_batch(self):
        """Unknown students and non-numeric subject ids fail their own rows."""
        result = reconcile(self.store, self.klass.pk, 'មករា', 2025, [
            {'student_id': self.sok.pk, 'subject_id': self.math.pk, 'score': 90},
            {'student_id': 99999, 'subject_id': self.math.pk, 'score': 50},
            {'student_id': self.sok.pk, 'subject_id': 'math', 'score': 50},
        ])

        self.assertEqual(result.created, 1)
        self.assertEqual(
            [(e['index'], e['reason']) for e in result.errors],
            [(1, 'Invalid student ID'), (2, 'Invalid subject ID')]
        )
        self.assertEqual(GradeRecord.objects.count(), 1)


class RecalculateSummariesCommandTest(StoreFixture):
    """Tests for the recalculate_summaries management command."""

    def setUp(self):
        super().setUp()
        reconcile(self.store, self.klass.pk, 'មករា', 2025, [
            {'student_id': self.sok.pk, 'subject_id': self.math.pk, 'score': 70},
        ])

    def test_single_class(self):
        out = StringIO()
        call_command('recalculate_summaries', month='1', year=2025, class_id=self.klass.pk, stdout=out)
        self.assertIn('Recalculated 1 summaries across 1 classes', out.getvalue())
        self.assertEqual(StudentMonthlySummary.objects.count(), 1)

    def test_whole_grade(self):
        out = StringIO()
        call_command('recalculate_summaries', month='January', year=2025, grade=12, stdout=out)
        self.assertIn('across 2 classes', out.getvalue())

    def test_errors(self):
        with self.assertRaises(CommandError):
            call_command('recalculate_summaries', month='1', year=2025, class_id=9999, stdout=StringIO())
        with self.assertRaises(CommandError):
            call_command('recalculate_summaries', month='13', year=2025, class_id=self.klass.pk, stdout=StringIO())
        with self.assertRaises(CommandError):
            call_command('recalculate_summaries', month='1', year=2025, grade=7, stdout=StringIO())
