"""
Monthly summary refresh.

Rebuilds StudentMonthlySummary rows of one class/period from its grade
records and re-ranks the whole class.
"""
from collections import defaultdict
import logging

from .grading import REPORT_GRADE_BAND, aggregate, quantize
from .models import StudentMonthlySummary
from .periods import normalize_month, normalize_year
from .ranking import rank_map
from .subjects import resolve_subjects

logger = logging.getLogger(__name__)


def recalculate_class_summaries(store, class_id, month, year):
    """
    Recompute summaries and class ranks for a class/period.

    Only students with at least one grade record in the period get a
    summary; summaries of students whose grades are all gone are deleted.

    Returns:
        list of StudentMonthlySummary in rank order
    """
    month, month_number = normalize_month(month)
    year = normalize_year(year)
    class_obj = store.get_class(class_id)

    # ========== PHASE 1: Prefetch ==========
    subjects = resolve_subjects(store, class_obj.grade, class_obj.track)
    students = sorted(store.list_students([class_obj.pk]), key=lambda s: s.display_name)
    student_ids = [s.pk for s in students]

    grades = store.list_grades(
        year,
        class_ids=[class_obj.pk],
        student_ids=student_ids,
        month_number=month_number,
    )
    scores_by_student = defaultdict(dict)
    for grade in grades:
        scores_by_student[grade.student_id][grade.subject_id] = grade.score

    # ========== PHASE 2: Aggregate in memory ==========
    summaries = []
    averages = {}
    for student in students:
        scores = scores_by_student.get(student.pk)
        if not scores:
            continue
        result = aggregate(student.pk, subjects, scores, band=REPORT_GRADE_BAND)
        averages[student.pk] = result.average
        summaries.append(StudentMonthlySummary(
            student_id=student.pk,
            school_class_id=class_obj.pk,
            month=month,
            month_number=month_number,
            year=year,
            total_score=quantize(result.total_score),
            total_max_score=result.total_max_score,
            total_weighted_score=quantize(result.total_weighted_score),
            total_coefficient=quantize(result.total_coefficient),
            average=quantize(result.average),
            grade_level=result.letter_grade,
        ))

    # ========== PHASE 3: Rank the whole class ==========
    ranks = rank_map(
        {'student_id': s.student_id, 'average': averages[s.student_id]} for s in summaries
    )
    for summary in summaries:
        summary.class_rank = ranks[summary.student_id]
    summaries.sort(key=lambda s: s.class_rank)

    # ========== PHASE 4: Persist ==========
    store.save_summaries(summaries)
    deleted = store.delete_summaries(
        class_obj.pk, month, year, [s.student_id for s in summaries]
    )

    logger.info(
        f'Recalculated {len(summaries)} summaries for class {class_obj} ({month} {year}), '
        f'removed {deleted} stale'
    )
    return summaries


def summary_row(summary):
    """JSON-ready dict of one stored summary."""
    student = summary.student
    return {
        'student_id': summary.student_id,
        'student_code': student.student_id,
        'student_name': student.display_name,
        'gender': student.gender,
        'total_score': summary.total_score,
        'total_max_score': summary.total_max_score,
        'total_weighted_score': summary.total_weighted_score,
        'total_coefficient': summary.total_coefficient,
        'average': summary.average,
        'grade_level': summary.grade_level,
        'class_rank': summary.class_rank,
    }


def class_summaries(store, class_id, month, year):
    """Stored summaries of a class/period in rank order, without recomputing."""
    month, _ = normalize_month(month)
    year = normalize_year(year)
    class_obj = store.get_class(class_id)

    summaries = store.list_summaries(class_obj.pk, month, year)
    return {
        'class_id': class_obj.pk,
        'class_name': class_obj.name,
        'month': month,
        'year': year,
        'summaries': [summary_row(s) for s in summaries],
    }
