"""
Coefficient-weighted aggregation and letter-grade bands.

Three bands exist and are deliberately kept apart:

- GRID_GRADE_BAND: average read on a 0-100 scale (grid view).
- REPORT_GRADE_BAND: average read as the raw weighted-sum-over-coefficient
  value (monthly, grade-wide, tracking book, statistics).
- SUBJECT_LEVEL_BAND: a single subject's percentage (tracking book and
  statistics cells).

The first two operate on numerically different domains; callers must pick
one explicitly.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

TWO_PLACES = Decimal('0.01')

# Percentage reported for a subject that has no score yet
NOT_GRADED = Decimal('-1')
NOT_GRADED_LEVEL = '-'


def quantize(value):
    """Round a Decimal to two places for storage and display."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value):
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class GradeBand:
    """
    An ordered set of (minimum, label, interpretation) thresholds.

    ``labels`` lists every label from best to worst, which is also the
    order used for distribution tables.
    """

    def __init__(self, name, thresholds, fallback, fallback_interpretation=''):
        self.name = name
        self.thresholds = [
            (Decimal(str(minimum)), label, interpretation)
            for minimum, label, interpretation in thresholds
        ]
        self.fallback = fallback
        self.fallback_interpretation = fallback_interpretation

    def __repr__(self):
        return f'<GradeBand {self.name}>'

    @property
    def labels(self):
        return [label for _, label, _ in self.thresholds] + [self.fallback]

    def grade_for(self, value):
        """Letter for a value: the first threshold the value reaches."""
        value = to_decimal(value) or Decimal('0')
        for minimum, label, _ in self.thresholds:
            if value >= minimum:
                return label
        return self.fallback

    def interpretation_for(self, label):
        for _, band_label, interpretation in self.thresholds:
            if band_label == label:
                return interpretation
        if label == self.fallback:
            return self.fallback_interpretation
        return ''


GRID_GRADE_BAND = GradeBand(
    'grid',
    [
        (90, 'A', 'Excellent'),
        (80, 'B+', 'Very Good'),
        (70, 'B', 'Good'),
        (60, 'C', 'Fairly Good'),
        (50, 'D', 'Fair'),
        (40, 'E', 'Weak'),
    ],
    fallback='F',
    fallback_interpretation='Fail',
)

REPORT_GRADE_BAND = GradeBand(
    'report',
    [
        (45, 'A', 'ល្អប្រសើរ'),
        (40, 'B', 'ល្អណាស់'),
        (35, 'C', 'ល្អ'),
        (30, 'D', 'ល្អបង្គួរ'),
        (25, 'E', 'មធ្យម'),
    ],
    fallback='F',
    fallback_interpretation='ខ្សោយ',
)

SUBJECT_LEVEL_BAND = GradeBand(
    'subject-level',
    [
        (80, 'A', 'ល្អប្រសើរ'),
        (70, 'B', 'ល្អណាស់'),
        (60, 'C', 'ល្អ'),
        (50, 'D', 'ល្អបង្គួរ'),
        (40, 'E', 'មធ្យម'),
    ],
    fallback='F',
    fallback_interpretation='ខ្សោយ',
)


def percentage(score, max_score):
    """Score as a percentage of max_score, or NOT_GRADED without a score."""
    if score is None:
        return NOT_GRADED
    if not max_score:
        return Decimal('0')
    return to_decimal(score) / Decimal(max_score) * 100


def weighted_score(score, coefficient):
    if score is None:
        return None
    return to_decimal(score) * to_decimal(coefficient)


def subject_level(score, max_score):
    """
    Descriptive level of a single subject score.

    Returns:
        dict: {'level', 'level_kh', 'percentage'}; level is '-' when ungraded
    """
    if score is None:
        return {
            'level': NOT_GRADED_LEVEL,
            'level_kh': NOT_GRADED_LEVEL,
            'percentage': NOT_GRADED,
        }
    pct = percentage(score, max_score)
    level = SUBJECT_LEVEL_BAND.grade_for(pct)
    return {
        'level': level,
        'level_kh': SUBJECT_LEVEL_BAND.interpretation_for(level),
        'percentage': quantize(pct),
    }


class SubjectResult:
    """One subject's contribution to an aggregate."""

    def __init__(self, subject, score):
        self.subject = subject
        self.score = to_decimal(score)
        self.percentage = percentage(self.score, subject.max_score)

    @property
    def is_graded(self):
        return self.score is not None

    def to_dict(self) -> Dict:
        return {
            'subject_id': self.subject.pk,
            'score': self.score,
            'max_score': self.subject.max_score,
            'coefficient': self.subject.coefficient,
            'percentage': quantize(self.percentage) if self.is_graded else NOT_GRADED,
        }


class AggregateResult:
    """Totals, average and letter grade of one student over a subject list."""

    def __init__(self, student_id, per_subject: List[SubjectResult], band: GradeBand):
        self.student_id = student_id
        self.per_subject = per_subject
        self.band = band

        # Every eligible subject counts in the denominator, graded or not
        self.total_coefficient = sum(
            (to_decimal(r.subject.coefficient) for r in per_subject), Decimal('0')
        )
        self.total_score = sum(
            (r.score for r in per_subject if r.is_graded), Decimal('0')
        )
        if self.total_coefficient > 0:
            self.average = self.total_score / self.total_coefficient
        else:
            self.average = Decimal('0')
        self.letter_grade = band.grade_for(self.average)

    @property
    def subjects_recorded(self):
        return sum(1 for r in self.per_subject if r.is_graded)

    @property
    def total_max_score(self):
        return sum(r.subject.max_score for r in self.per_subject if r.is_graded)

    @property
    def total_weighted_score(self):
        return sum(
            (weighted_score(r.score, r.subject.coefficient) for r in self.per_subject if r.is_graded),
            Decimal('0')
        )

    def to_dict(self) -> Dict:
        return {
            'student_id': self.student_id,
            'per_subject': [r.to_dict() for r in self.per_subject],
            'total_score': quantize(self.total_score),
            'total_coefficient': quantize(self.total_coefficient),
            'average': quantize(self.average),
            'letter_grade': self.letter_grade,
        }


def aggregate(student_id, subjects, scores, band=REPORT_GRADE_BAND):
    """
    Aggregate one student's scores over an ordered subject list.

    Args:
        student_id: Student the scores belong to
        subjects: Ordered eligible subjects (coefficient, max_score)
        scores: {subject_id: score or None}; missing keys count as ungraded
        band: GRID_GRADE_BAND or REPORT_GRADE_BAND

    Returns:
        AggregateResult
    """
    per_subject = [SubjectResult(subject, scores.get(subject.pk)) for subject in subjects]
    return AggregateResult(student_id, per_subject, band)
