"""
Report renderers.

Every renderer composes the same three steps (resolve subjects, aggregate
each student, rank the cohort) and differs only in grouping, letter-grade
band and overlays. Each returns a plain payload dict ready for JSON or a
spreadsheet writer; none of them writes to storage.
"""
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List
import logging

from academics.models import AttendanceRecord, Class, Subject
from . import config
from .grading import (
    GRID_GRADE_BAND, REPORT_GRADE_BAND, SUBJECT_LEVEL_BAND,
    aggregate, quantize, subject_level,
)
from .periods import month_span, normalize_month, normalize_year, year_span
from .ranking import assign_ranks
from .subjects import (
    filter_for_track, resolve_grade_subjects, resolve_subjects, subject_payload,
)

logger = logging.getLogger(__name__)


# ============ Shared helpers ============

def sort_students(students):
    """Order students by display name (Khmer name, else 'Last First')."""
    return sorted(students, key=lambda s: (s.display_name, s.student_id))


def scores_by_student(grades):
    """{student_id: {subject_id: score}} from grade records."""
    scores = defaultdict(dict)
    for grade in grades:
        scores[grade.student_id][grade.subject_id] = grade.score
    return scores


def summarize_attendance(records):
    """
    Absence counts per student.

    Returns:
        dict: {student_id: {'absent', 'permission'}}; ABSENT and PERMISSION
        are the only statuses counted.
    """
    summary = defaultdict(lambda: {'absent': 0, 'permission': 0})
    for record in records:
        if record.status == AttendanceRecord.Status.ABSENT:
            summary[record.student_id]['absent'] += 1
        elif record.status == AttendanceRecord.Status.PERMISSION:
            summary[record.student_id]['permission'] += 1
    return summary


def _empty_distribution(band):
    return {label: {'total': 0, 'female': 0, 'male': 0} for label in band.labels}


def _count(bucket, student):
    bucket['total'] += 1
    if student.is_female:
        bucket['female'] += 1
    else:
        bucket['male'] += 1


def _class_header(class_obj, month, year):
    return {
        'class_id': class_obj.pk,
        'class_name': class_obj.name,
        'grade': class_obj.grade,
        'track': class_obj.track or None,
        'teacher_name': class_obj.class_teacher_name or None,
        'month': month,
        'year': year,
    }


class ReportRow:
    """One student's line on a ranked report."""

    def __init__(self, student, result, **extra):
        self.student = student
        self.result = result
        self.extra = extra
        self.rank = 0

    @property
    def student_id(self):
        return self.student.pk

    @property
    def average(self):
        return self.result.average

    def to_dict(self) -> Dict:
        data = {
            'student_id': self.student.pk,
            'student_code': self.student.student_id,
            'student_name': self.student.display_name,
            'gender': self.student.gender,
            'scores': {r.subject.pk: r.score for r in self.result.per_subject},
            'total_score': quantize(self.result.total_score),
            'total_coefficient': quantize(self.result.total_coefficient),
            'average': quantize(self.result.average),
            'grade_level': self.result.letter_grade,
            'rank': self.rank,
        }
        data.update(self.extra)
        return data


# ============ Grid ============

def grid(store, class_id, month, year):
    """
    Score-entry grid for one class and month.

    Uses the grid letter-grade band. Each cell reports whether a record
    already exists so the entry screen can tell saved from blank cells.
    """
    month, month_number = normalize_month(month)
    year = normalize_year(year)
    class_obj = store.get_class(class_id)

    subjects = resolve_subjects(store, class_obj.grade, class_obj.track)
    students = sort_students(store.list_students([class_obj.pk]))
    grades = store.list_grades(
        year,
        class_ids=[class_obj.pk],
        student_ids=[s.pk for s in students],
        month_number=month_number,
        subject_ids=[s.pk for s in subjects],
    )
    saved = {g.natural_key for g in grades}
    scores = scores_by_student(grades)

    rows = []
    for student in students:
        result = aggregate(student.pk, subjects, scores.get(student.pk, {}), band=GRID_GRADE_BAND)
        cells = [
            {
                'subject_id': r.subject.pk,
                'score': r.score,
                'max_score': r.subject.max_score,
                'coefficient': r.subject.coefficient,
                'is_saved': (student.pk, r.subject.pk) in saved,
            }
            for r in result.per_subject
        ]
        rows.append(ReportRow(
            student, result,
            cells=cells,
            total_max_score=result.total_max_score,
        ))
    assign_ranks(rows)

    payload = _class_header(class_obj, month, year)
    payload.update({
        'band': GRID_GRADE_BAND.name,
        'total_coefficient': quantize(sum((s.coefficient for s in subjects), Decimal('0'))),
        'subjects': [subject_payload(s, class_obj.grade) for s in subjects],
        'students': [row.to_dict() for row in rows],
    })
    return payload


# ============ Monthly report ============

def monthly_report(store, class_id, month, year):
    """Class report for one month, with absence counts for that month."""
    month, month_number = normalize_month(month)
    year = normalize_year(year)
    class_obj = store.get_class(class_id)

    subjects = resolve_subjects(store, class_obj.grade, class_obj.track)
    students = sort_students(store.list_students([class_obj.pk]))
    student_ids = [s.pk for s in students]
    scores = scores_by_student(store.list_grades(
        year,
        class_ids=[class_obj.pk],
        student_ids=student_ids,
        month_number=month_number,
    ))

    start, end = month_span(year, month_number)
    attendance = summarize_attendance(
        store.list_attendance(start, end, class_id=class_obj.pk)
    )

    rows = []
    for student in students:
        result = aggregate(student.pk, subjects, scores.get(student.pk, {}), band=REPORT_GRADE_BAND)
        absences = attendance.get(student.pk, {'absent': 0, 'permission': 0})
        rows.append(ReportRow(
            student, result,
            absent=absences['absent'],
            permission=absences['permission'],
        ))
    assign_ranks(rows)

    logger.debug(
        f'Monthly report for {class_obj} ({month} {year}): '
        f'{len(subjects)} subjects, {len(rows)} students'
    )

    payload = _class_header(class_obj, month, year)
    payload.update({
        'band': REPORT_GRADE_BAND.name,
        'total_coefficient': quantize(sum((s.coefficient for s in subjects), Decimal('0'))),
        'subjects': [subject_payload(s, class_obj.grade) for s in subjects],
        'students': [row.to_dict() for row in rows],
    })
    return payload


# ============ Grade-wide report ============

def grade_wide_report(store, grade, month, year):
    """
    One month's report across every class of a grade level.

    Subjects are loaded once for the grade, then narrowed per student to
    the student's own class track, so each student's coefficient total
    covers only the subjects that apply to them. The whole grade is ranked
    as one cohort.

    Raises:
        Class.DoesNotExist: the grade has no active classes
    """
    month, month_number = normalize_month(month)
    year = normalize_year(year)
    grade = int(grade)

    classes = store.list_classes(grade)
    if not classes:
        raise Class.DoesNotExist(f'No classes found for grade {grade}')
    classes_by_id = {c.pk: c for c in classes}

    subjects = resolve_grade_subjects(store, grade)
    students = sort_students(store.list_students(classes_by_id.keys()))
    student_ids = [s.pk for s in students]
    scores = scores_by_student(store.list_grades(
        year,
        student_ids=student_ids,
        month_number=month_number,
    ))

    start, end = month_span(year, month_number)
    attendance = summarize_attendance(
        store.list_attendance(start, end, student_ids=student_ids)
    )

    subjects_by_track = {}
    rows = []
    for student in students:
        class_obj = classes_by_id[student.current_class_id]
        track = class_obj.track or None
        if track not in subjects_by_track:
            subjects_by_track[track] = filter_for_track(subjects, grade, track)
            logger.debug(
                f'Grade {grade} track {track or "-"}: '
                f'{len(subjects_by_track[track])} of {len(subjects)} subjects apply'
            )

        result = aggregate(
            student.pk, subjects_by_track[track], scores.get(student.pk, {}),
            band=REPORT_GRADE_BAND
        )
        absences = attendance.get(student.pk, {'absent': 0, 'permission': 0})
        rows.append(ReportRow(
            student, result,
            class_id=class_obj.pk,
            class_name=class_obj.name,
            absent=absences['absent'],
            permission=absences['permission'],
        ))
    assign_ranks(rows)

    total_coefficients = {
        track or 'all': quantize(sum((s.coefficient for s in track_subjects), Decimal('0')))
        for track, track_subjects in subjects_by_track.items()
    }

    return {
        'grade': grade,
        'class_names': ', '.join(c.name for c in classes),
        'total_classes': len(classes),
        'month': month,
        'year': year,
        'band': REPORT_GRADE_BAND.name,
        'total_coefficients': total_coefficients,
        'subjects': [subject_payload(s, grade) for s in subjects],
        'students': [row.to_dict() for row in rows],
    }


# ============ Tracking book ============

def _subject_cell(subject, score):
    level = subject_level(score, subject.max_score)
    return {
        'score': score,
        'max_score': subject.max_score,
        'grade_level': level['level'],
        'grade_level_kh': level['level_kh'],
        'percentage': level['percentage'],
    }


def _mean(values):
    if not values:
        return None
    return quantize(sum(values, Decimal('0')) / len(values))


def tracking_book(store, class_id, year, month=None, subject_id=None):
    """
    Per-student subject levels for a class over a month or a whole year.

    With a month, each subject cell holds that month's score. Without one,
    each student also gets a per-month matrix and the subject cell holds
    the mean of the months that have a score. Students with no recorded
    subject are listed with rank 0 and left out of the ranking.

    Raises:
        Subject.DoesNotExist: subject_id is not one of the class's subjects
    """
    year = normalize_year(year)
    month_number = None
    if month not in (None, ''):
        month, month_number = normalize_month(month)
    else:
        month = None
    class_obj = store.get_class(class_id)

    subjects = resolve_subjects(store, class_obj.grade, class_obj.track)
    if subject_id not in (None, ''):
        subjects = [s for s in subjects if str(s.pk) == str(subject_id)]
        if not subjects:
            raise Subject.DoesNotExist(
                f'Subject {subject_id} does not apply to class {class_obj}'
            )

    students = sort_students(store.list_students([class_obj.pk]))
    student_ids = [s.pk for s in students]
    grades = store.list_grades(
        year,
        class_ids=[class_obj.pk],
        student_ids=student_ids,
        month_number=month_number,
        subject_ids=[s.pk for s in subjects],
    )

    # {student_id: {subject_id: {month_number: score}}}
    monthly = defaultdict(lambda: defaultdict(dict))
    for grade in grades:
        monthly[grade.student_id][grade.subject_id][grade.month_number] = grade.score

    if month_number:
        start, end = month_span(year, month_number)
    else:
        start, end = year_span(year)
    attendance = summarize_attendance(
        store.list_attendance(start, end, class_id=class_obj.pk, student_ids=student_ids)
    )

    rows = []
    for student in students:
        by_subject = monthly.get(student.pk, {})
        scores = {}
        for subject in subjects:
            recorded = [
                score for score in by_subject.get(subject.pk, {}).values()
                if score is not None
            ]
            scores[subject.pk] = _mean(recorded)

        result = aggregate(student.pk, subjects, scores, band=REPORT_GRADE_BAND)
        absences = attendance.get(student.pk, {'absent': 0, 'permission': 0})
        extra = {
            'date_of_birth': student.date_of_birth,
            'subject_scores': {
                r.subject.pk: _subject_cell(r.subject, r.score) for r in result.per_subject
            },
            'subjects_recorded': result.subjects_recorded,
            'grade_level_kh': REPORT_GRADE_BAND.interpretation_for(result.letter_grade),
            'attendance': {
                'total_absent': absences['absent'] + absences['permission'],
                'permission': absences['permission'],
                'without_permission': absences['absent'],
            },
        }
        if month_number is None:
            extra['months'] = _month_matrix(subjects, by_subject)
        rows.append(ReportRow(student, result, **extra))

    assign_ranks(rows, eligible=lambda row: row.result.subjects_recorded > 0)

    logger.debug(
        f'Tracking book for {class_obj} ({month or "whole year"} {year}): '
        f'{len(subjects)} subjects, {len(rows)} students'
    )

    payload = _class_header(class_obj, month, year)
    payload.update({
        'band': REPORT_GRADE_BAND.name,
        'level_band': SUBJECT_LEVEL_BAND.name,
        'total_coefficient': quantize(sum((s.coefficient for s in subjects), Decimal('0'))),
        'subjects': [subject_payload(s, class_obj.grade) for s in subjects],
        'students': [row.to_dict() for row in rows],
    })
    return payload


def _month_matrix(subjects, by_subject) -> List[Dict]:
    """Subject cells per month, for the months that have any record."""
    month_numbers = sorted({
        number for per_month in by_subject.values() for number in per_month
    })
    months = []
    for number in month_numbers:
        khmer, _ = normalize_month(number)
        months.append({
            'month': khmer,
            'month_number': number,
            'subject_scores': {
                s.pk: _subject_cell(s, by_subject.get(s.pk, {}).get(number))
                for s in subjects
            },
        })
    return months


# ============ Statistics ============

def statistics(store, class_id, month, year):
    """
    Letter-grade distribution and pass/fail counts for one class and month,
    split by gender. Students are not ranked.

    A student passes with an average of at least PASS_AVERAGE. Subject
    distributions count only graded cells, using the subject-level band.
    """
    month, month_number = normalize_month(month)
    year = normalize_year(year)
    class_obj = store.get_class(class_id)
    pass_average = Decimal(str(config.PASS_AVERAGE))

    subjects = resolve_subjects(store, class_obj.grade, class_obj.track)
    students = sort_students(store.list_students([class_obj.pk]))
    scores = scores_by_student(store.list_grades(
        year,
        class_ids=[class_obj.pk],
        student_ids=[s.pk for s in students],
        month_number=month_number,
    ))

    female_count = sum(1 for s in students if s.is_female)
    stats = {
        'total_students': len(students),
        'female_students': female_count,
        'male_students': len(students) - female_count,
        'total_passed': 0,
        'female_passed': 0,
        'male_passed': 0,
        'total_failed': 0,
        'female_failed': 0,
        'male_failed': 0,
        'grade_distribution': _empty_distribution(REPORT_GRADE_BAND),
    }

    subject_stats = {
        s.pk: {
            'subject_id': s.pk,
            'subject_name': s.name_kh,
            'subject_code': s.code,
            'grade_distribution': _empty_distribution(SUBJECT_LEVEL_BAND),
            'totals': {'total': Decimal('0'), 'female': Decimal('0'), 'male': Decimal('0')},
            'scored': {'total': 0, 'female': 0, 'male': 0},
        }
        for s in subjects
    }

    for student in students:
        result = aggregate(student.pk, subjects, scores.get(student.pk, {}), band=REPORT_GRADE_BAND)
        gender_key = 'female' if student.is_female else 'male'

        for subject_result in result.per_subject:
            if not subject_result.is_graded:
                continue
            entry = subject_stats[subject_result.subject.pk]
            level = SUBJECT_LEVEL_BAND.grade_for(subject_result.percentage)
            _count(entry['grade_distribution'][level], student)
            entry['scored']['total'] += 1
            entry['scored'][gender_key] += 1
            entry['totals']['total'] += subject_result.score
            entry['totals'][gender_key] += subject_result.score

        _count(stats['grade_distribution'][result.letter_grade], student)
        outcome = 'passed' if result.average >= pass_average else 'failed'
        stats[f'total_{outcome}'] += 1
        stats[f'{gender_key}_{outcome}'] += 1

    stats['subject_statistics'] = [
        _finish_subject_stats(subject_stats[s.pk]) for s in subjects
    ]

    payload = _class_header(class_obj, month, year)
    payload.update({
        'band': REPORT_GRADE_BAND.name,
        'pass_average': pass_average,
        'total_coefficient': quantize(sum((s.coefficient for s in subjects), Decimal('0'))),
        'subjects': [subject_payload(s, class_obj.grade) for s in subjects],
        'statistics': stats,
    })
    return payload


def _finish_subject_stats(entry):
    def average(key):
        count = entry['scored'][key]
        return quantize(entry['totals'][key] / count) if count else Decimal('0.00')

    return {
        'subject_id': entry['subject_id'],
        'subject_name': entry['subject_name'],
        'subject_code': entry['subject_code'],
        'grade_distribution': entry['grade_distribution'],
        'average_score': average('total'),
        'female_average_score': average('female'),
        'male_average_score': average('male'),
        'total_scored': entry['scored']['total'],
        'female_scored': entry['scored']['female'],
        'male_scored': entry['scored']['male'],
    }
