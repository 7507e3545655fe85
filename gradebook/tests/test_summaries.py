from decimal import Decimal

from django.test import SimpleTestCase

from gradebook.models import StudentMonthlySummary
from gradebook.summaries import class_summaries, recalculate_class_summaries
from .fakes import InMemoryGradeStore, make_class, make_student, make_subject


class SummaryRefreshTest(SimpleTestCase):
    """Tests for monthly summary recalculation."""

    def setUp(self):
        self.klass = make_class(1, 12, track='science')
        self.math = make_subject(10, 'MATH-G12-SCIENCE', 12, coefficient='2', track='science')
        self.khmer = make_subject(11, 'KHM-G12', 12, coefficient='1')
        self.social_math = make_subject(12, 'MATH-G12-SOCIAL', 12, coefficient='1.5', track='social')
        self.a = make_student(1, 'A', 1, khmer_name='ក')
        self.b = make_student(2, 'B', 1, khmer_name='ខ')
        self.c = make_student(3, 'C', 1, khmer_name='គ')
        self.store = InMemoryGradeStore(
            classes=[self.klass],
            students=[self.a, self.b, self.c],
            subjects=[self.math, self.khmer, self.social_math],
        )
        self.store.add_grade(1, self.math, 1, 'មករា', 1, 2025, 90)
        self.store.add_grade(1, self.khmer, 1, 'មករា', 1, 2025, 80)
        self.store.add_grade(2, self.math, 1, 'មករា', 1, 2025, 60)

    def test_summaries_and_ranks(self):
        summaries = recalculate_class_summaries(self.store, 1, 'មករា', 2025)
        by_student = {s.student_id: s for s in summaries}

        self.assertEqual(set(by_student), {1, 2})
        a, b = by_student[1], by_student[2]

        self.assertEqual(a.total_score, Decimal('170.00'))
        self.assertEqual(a.total_coefficient, Decimal('3.00'))
        self.assertEqual(a.average, Decimal('56.67'))
        self.assertEqual(a.total_max_score, 200)
        self.assertEqual(a.total_weighted_score, Decimal('260.00'))
        self.assertEqual(a.grade_level, 'A')
        self.assertEqual(a.class_rank, 1)

        self.assertEqual(b.total_coefficient, Decimal('3.00'))
        self.assertEqual(b.average, Decimal('20.00'))
        self.assertEqual(b.total_max_score, 100)
        self.assertEqual(b.grade_level, 'F')
        self.assertEqual(b.class_rank, 2)

    def test_month_can_be_given_as_number(self):
        summaries = recalculate_class_summaries(self.store, 1, 1, 2025)
        self.assertEqual(summaries[0].month, 'មករា')
        self.assertEqual(summaries[0].month_number, 1)

    def test_rerun_replaces_and_prunes(self):
        recalculate_class_summaries(self.store, 1, 'មករា', 2025)
        self.store.summaries.append(StudentMonthlySummary(
            student_id=3, school_class_id=1, month='មករា', month_number=1, year=2025
        ))

        self.store.grades = [g for g in self.store.grades if g.student_id != 2]
        recalculate_class_summaries(self.store, 1, 'មករា', 2025)

        remaining = self.store.list_summaries(1, 'មករា', 2025)
        self.assertEqual([s.student_id for s in remaining], [1])
        self.assertEqual(remaining[0].class_rank, 1)

    def test_other_periods_untouched(self):
        self.store.add_grade(3, self.math, 1, 'កុម្ភៈ', 2, 2025, 50)
        summaries = recalculate_class_summaries(self.store, 1, 'មករា', 2025)
        self.assertNotIn(3, [s.student_id for s in summaries])

    def test_class_summaries_payload(self):
        recalculate_class_summaries(self.store, 1, 'មករា', 2025)

        payload = class_summaries(self.store, 1, 'January', '2025')

        self.assertEqual((payload['month'], payload['year']), ('មករា', 2025))
        self.assertEqual([row['student_name'] for row in payload['summaries']], ['ក', 'ខ'])
        self.assertEqual([row['class_rank'] for row in payload['summaries']], [1, 2])
        self.assertEqual(payload['summaries'][0]['average'], Decimal('56.67'))
        self.assertEqual(class_summaries(self.store, 1, 2, 2025)['summaries'], [])
