"""
Subject resolution: which subjects count toward a student's average for a
grade level and (for the senior grades) an academic track.

Column order is fixed per grade so every report lays subjects out the same
way; codes missing from the table sort after the mapped ones, alphabetically.
"""
import logging

from core.choices import Track
from . import config

logger = logging.getLogger(__name__)

UNMAPPED_ORDER = 999

# base code -> (display order, short code)
_JUNIOR_ORDER = {
    'WRITING': (1, 'W'),
    'WRITER': (2, 'R'),
    'DICTATION': (3, 'D'),
    'MATH': (4, 'M'),
    'PHY': (5, 'P'),
    'CHEM': (6, 'C'),
    'BIO': (7, 'B'),
    'EARTH': (8, 'Es'),
    'MORAL': (9, 'Mo'),
    'GEO': (10, 'G'),
    'HIST': (11, 'H'),
    'ENG': (12, 'E'),
    'HE': (13, 'He'),
    'HLTH': (14, 'Hl'),
    'SPORTS': (15, 'S'),
    'AGRI': (16, 'Ag'),
    'ICT': (17, 'IT'),
}

_GRADE_9_ORDER = {
    'WRITING': (1, 'W'),
    'WRITER': (2, 'R'),
    'DICTATION': (3, 'D'),
    'MATH': (4, 'M'),
    'PHY': (5, 'P'),
    'CHEM': (6, 'C'),
    'BIO': (7, 'B'),
    'EARTH': (8, 'Es'),
    'MORAL': (9, 'Mo'),
    'GEO': (10, 'G'),
    'HIST': (11, 'H'),
    'ENG': (12, 'E'),
    'KHM': (13, 'K'),
    'ECON': (14, 'Ec'),
    'HLTH': (15, 'Hl'),
    'HE': (16, 'He'),
    'SPORTS': (17, 'S'),
    'AGRI': (18, 'Ag'),
    'ICT': (19, 'IT'),
}

_SENIOR_ORDER = {
    'KHM': (1, 'K'),
    'MATH': (2, 'M'),
    'PHY': (3, 'P'),
    'CHEM': (4, 'C'),
    'BIO': (5, 'B'),
    'EARTH': (6, 'Es'),
    'MORAL': (7, 'Mo'),
    'GEO': (8, 'G'),
    'HIST': (9, 'H'),
    'ENG': (10, 'E'),
    'ECON': (11, 'Ec'),
    'HLTH': (12, 'Hl'),
    'SPORTS': (13, 'S'),
    'AGRI': (14, 'Ag'),
    'ICT': (15, 'IT'),
}

DISPLAY_ORDER = {
    7: _JUNIOR_ORDER,
    8: _JUNIOR_ORDER,
    9: _GRADE_9_ORDER,
    10: _SENIOR_ORDER,
    11: _SENIOR_ORDER,
    12: _SENIOR_ORDER,
}


def is_tracked_grade(grade):
    return int(grade) in config.TRACKED_GRADES


def is_track_agnostic(subject):
    return subject.track is None or subject.track in ('', Track.COMMON)


def is_eligible(subject, grade, track=None):
    """
    Whether a subject counts for a grade/track.

    Untracked grades ignore ``track`` entirely. For tracked grades a missing
    track means only the track-agnostic subjects; no default track is guessed.
    """
    if subject.grade != int(grade) or not subject.is_active:
        return False
    if not is_tracked_grade(grade):
        return True
    if track:
        return subject.track == track or is_track_agnostic(subject)
    return is_track_agnostic(subject)


def display_info(subject, grade):
    """(display order, short code) of a subject within its grade's table."""
    order_table = DISPLAY_ORDER.get(int(grade), {})
    return order_table.get(subject.base_code, (UNMAPPED_ORDER, subject.code))


def order_subjects(subjects, grade):
    """Sort by the grade's display-order table, then by raw code."""
    return sorted(
        subjects,
        key=lambda s: (display_info(s, grade)[0], s.code)
    )


def filter_for_track(subjects, grade, track=None):
    """Narrow an already-loaded subject list to one grade/track, keeping order."""
    return [s for s in subjects if is_eligible(s, grade, track)]


def resolve_subjects(store, grade, track=None):
    """
    Ordered list of subjects counting toward the average for a grade/track.

    Args:
        store: BaseGradeStore used for the catalog lookup
        grade: Grade level (7-12)
        track: Class track; ignored for untracked grades

    Returns:
        list of Subject in display order
    """
    grade = int(grade)
    if is_tracked_grade(grade) and not track:
        logger.debug(f'Grade {grade} resolved without a track: track-agnostic subjects only')

    candidates = store.list_subjects(grade=grade)
    return order_subjects(filter_for_track(candidates, grade, track), grade)


def resolve_grade_subjects(store, grade):
    """
    Every active subject of a grade across all tracks, in display order.

    Used by grade-wide reports, which re-filter per student with
    filter_for_track().
    """
    grade = int(grade)
    candidates = [s for s in store.list_subjects(grade=grade) if s.is_active]
    return order_subjects(candidates, grade)


def subject_payload(subject, grade):
    order, short_code = display_info(subject, grade)
    return {
        'id': subject.pk,
        'code': subject.code,
        'short_code': short_code,
        'name_kh': subject.name_kh,
        'name_en': subject.name_en,
        'track': subject.track,
        'max_score': subject.max_score,
        'coefficient': subject.coefficient,
        'order': order,
    }
