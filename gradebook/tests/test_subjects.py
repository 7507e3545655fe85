from django.test import SimpleTestCase

from gradebook.subjects import (
    UNMAPPED_ORDER, display_info, filter_for_track, is_eligible,
    resolve_grade_subjects, resolve_subjects, subject_payload,
)
from .fakes import InMemoryGradeStore, make_subject


class SubjectResolverTest(SimpleTestCase):
    """Tests for grade/track subject eligibility."""

    def setUp(self):
        self.math_sci = make_subject(1, 'MATH-G12-SCIENCE', 12, coefficient='2.5', track='science')
        self.math_soc = make_subject(2, 'MATH-G12-SOCIAL', 12, coefficient='1.5', track='social')
        self.khm_common = make_subject(3, 'KHM-G12', 12, coefficient='1.5', track='common')
        self.eng_null = make_subject(4, 'ENG-G12', 12, max_score=50, track=None)
        self.old = make_subject(5, 'AGRI-G12', 12, max_score=50, is_active=False)
        self.math_7 = make_subject(6, 'MATH-G7', 7, coefficient='2')
        self.writing_7 = make_subject(7, 'WRITING-G7', 7, max_score=60, coefficient='1.2')
        self.tagged_7 = make_subject(8, 'PHY-G7', 7, max_score=50, track='science')
        self.store = InMemoryGradeStore(subjects=[
            self.math_sci, self.math_soc, self.khm_common, self.eng_null,
            self.old, self.math_7, self.writing_7, self.tagged_7,
        ])

    def test_track_isolation(self):
        """Science subjects never reach social students and vice versa."""
        science = resolve_subjects(self.store, 12, 'science')
        social = resolve_subjects(self.store, 12, 'social')

        self.assertIn(self.math_sci, science)
        self.assertNotIn(self.math_soc, science)
        self.assertIn(self.math_soc, social)
        self.assertNotIn(self.math_sci, social)

        for resolved in (science, social):
            self.assertIn(self.khm_common, resolved)
            self.assertIn(self.eng_null, resolved)

    def test_tracked_grade_without_track_gets_agnostic_subjects_only(self):
        """A missing track does not fall back to any default track."""
        resolved = resolve_subjects(self.store, 12)
        self.assertEqual(set(resolved), {self.khm_common, self.eng_null})

    def test_untracked_grade_ignores_track(self):
        """Grades outside the tracked set ignore track entirely."""
        without = resolve_subjects(self.store, 7)
        with_social = resolve_subjects(self.store, 7, 'social')
        self.assertEqual(without, with_social)
        self.assertIn(self.tagged_7, with_social)

    def test_inactive_subjects_excluded(self):
        self.assertNotIn(self.old, resolve_subjects(self.store, 12, 'science'))
        self.assertNotIn(self.old, resolve_grade_subjects(self.store, 12))

    def test_other_grades_excluded(self):
        self.assertFalse(is_eligible(self.math_7, 12, 'science'))
        self.assertNotIn(self.math_7, resolve_subjects(self.store, 12, 'science'))

    def test_display_order(self):
        """Subjects follow the grade's display table, not raw code order."""
        resolved = resolve_subjects(self.store, 12, 'science')
        self.assertEqual(
            [s.code for s in resolved],
            ['KHM-G12', 'MATH-G12-SCIENCE', 'ENG-G12']
        )

        junior = resolve_subjects(self.store, 7)
        self.assertEqual([s.code for s in junior], ['WRITING-G7', 'MATH-G7', 'PHY-G7'])

    def test_unmapped_codes_sort_last_alphabetically(self):
        zed = make_subject(20, 'ZED-G10', 10)
        art = make_subject(21, 'ART-G10', 10)
        math = make_subject(22, 'MATH-G10', 10)
        store = InMemoryGradeStore(subjects=[zed, art, math])

        resolved = resolve_subjects(store, 10)
        self.assertEqual([s.code for s in resolved], ['MATH-G10', 'ART-G10', 'ZED-G10'])
        self.assertEqual(display_info(art, 10), (UNMAPPED_ORDER, 'ART-G10'))

    def test_grade_subjects_cover_all_tracks(self):
        """Grade-wide resolution returns every track; filtering narrows it."""
        every = resolve_grade_subjects(self.store, 12)
        self.assertIn(self.math_sci, every)
        self.assertIn(self.math_soc, every)

        social = filter_for_track(every, 12, 'social')
        self.assertEqual(social, resolve_subjects(self.store, 12, 'social'))

    def test_subject_payload(self):
        payload = subject_payload(self.math_sci, 12)
        self.assertEqual(payload['short_code'], 'M')
        self.assertEqual(payload['order'], 2)
        self.assertEqual(payload['max_score'], 100)
