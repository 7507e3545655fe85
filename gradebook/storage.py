"""
Storage handles for the grade engine.

Every engine component receives a store explicitly instead of reaching for
the ORM directly, so tests (and alternative backends) can swap it out.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from django.db import transaction

from academics.models import AttendanceRecord, Class, Subject
from students.models import Student
from .models import GradeRecord, StudentMonthlySummary

logger = logging.getLogger(__name__)

GradeKey = Tuple[int, int]  # (student_id, subject_id)

GRADE_UPDATE_FIELDS = ['score', 'max_score', 'percentage', 'weighted_score', 'updated_at']

SUMMARY_FIELDS = [
    'total_score', 'total_max_score', 'total_weighted_score',
    'total_coefficient', 'average', 'grade_level', 'class_rank',
]


class BaseGradeStore(ABC):
    """
    Abstract storage interface used by the resolver, reconciler,
    summaries and report renderers.
    """

    # ---- Catalog (read-only) ----

    @abstractmethod
    def get_class(self, class_id) -> Class:
        """Return the class or raise Class.DoesNotExist."""

    @abstractmethod
    def list_classes(self, grade: int) -> List[Class]:
        """Active classes of a grade level, ordered by name."""

    @abstractmethod
    def list_students(self, class_ids: Iterable) -> List[Student]:
        """Active students currently assigned to any of the classes."""

    @abstractmethod
    def existing_student_ids(self, student_ids: Iterable) -> Set[int]:
        """The subset of student_ids that exist, active or not."""

    @abstractmethod
    def list_subjects(
        self,
        grade: Optional[int] = None,
        subject_ids: Optional[Iterable] = None,
        active_only: bool = True,
    ) -> List[Subject]:
        pass

    # ---- Grade records ----

    @abstractmethod
    def find_grades(self, class_id, month: str, year: int, keys: Iterable[GradeKey]) -> Dict[GradeKey, GradeRecord]:
        """
        Existing records of a class/period for the given (student, subject)
        pairs, fetched in a single round-trip.
        """

    @abstractmethod
    def list_grades(
        self,
        year: int,
        class_ids: Optional[Iterable] = None,
        student_ids: Optional[Iterable] = None,
        month_number: Optional[int] = None,
        subject_ids: Optional[Iterable] = None,
    ) -> List[GradeRecord]:
        pass

    @abstractmethod
    def create_grades(self, class_id, month: str, year: int, records: List[GradeRecord]) -> int:
        """
        Insert records in bulk, silently dropping any whose natural key
        already exists. Returns the number of rows actually inserted.
        """

    @abstractmethod
    def update_grades(self, records: List[GradeRecord]) -> None:
        """Write score fields of the given records in one transaction."""

    # ---- Attendance (read-only) ----

    @abstractmethod
    def list_attendance(self, start, end, class_id=None, student_ids=None) -> List[AttendanceRecord]:
        pass

    # ---- Monthly summaries ----

    @abstractmethod
    def list_summaries(self, class_id, month: str, year: int) -> List[StudentMonthlySummary]:
        """Summaries of a class/period in rank order, each with its student loaded."""

    @abstractmethod
    def save_summaries(self, summaries: List[StudentMonthlySummary]) -> None:
        """Insert or update summaries on (student, class, month, year)."""

    @abstractmethod
    def delete_summaries(self, class_id, month: str, year: int, keep_student_ids: Iterable) -> int:
        """Remove summaries of the period whose student is not in keep_student_ids."""


class DjangoGradeStore(BaseGradeStore):
    """Store backed by the Django ORM."""

    def get_class(self, class_id):
        return Class.objects.get(pk=class_id)

    def list_classes(self, grade):
        return list(Class.objects.filter(grade=grade, is_active=True).order_by('name'))

    def list_students(self, class_ids):
        return list(Student.objects.filter(
            current_class_id__in=list(class_ids),
            is_active=True
        ))

    def existing_student_ids(self, student_ids):
        return set(Student.objects.filter(
            pk__in=list(student_ids)
        ).values_list('pk', flat=True))

    def list_subjects(self, grade=None, subject_ids=None, active_only=True):
        qs = Subject.objects.all()
        if grade is not None:
            qs = qs.filter(grade=grade)
        if subject_ids is not None:
            qs = qs.filter(pk__in=list(subject_ids))
        if active_only:
            qs = qs.filter(is_active=True)
        return list(qs.order_by('code'))

    def find_grades(self, class_id, month, year, keys):
        keys = set(keys)
        if not keys:
            return {}

        student_ids = {student_id for student_id, _ in keys}
        subject_ids = {subject_id for _, subject_id in keys}

        # One query over the bounding set, narrowed to exact pairs in memory
        candidates = GradeRecord.objects.filter(
            school_class_id=class_id,
            month=month,
            year=year,
            student_id__in=student_ids,
            subject_id__in=subject_ids,
        )
        return {
            g.natural_key: g for g in candidates
            if g.natural_key in keys
        }

    def list_grades(self, year, class_ids=None, student_ids=None, month_number=None, subject_ids=None):
        qs = GradeRecord.objects.filter(year=year)
        if class_ids is not None:
            qs = qs.filter(school_class_id__in=list(class_ids))
        if student_ids is not None:
            qs = qs.filter(student_id__in=list(student_ids))
        if month_number is not None:
            qs = qs.filter(month_number=month_number)
        if subject_ids is not None:
            qs = qs.filter(subject_id__in=list(subject_ids))
        return list(qs.order_by('month_number'))

    def create_grades(self, class_id, month, year, records):
        if not records:
            return 0

        keys = {r.natural_key for r in records}
        before = self._existing_keys(class_id, month, year, keys)
        GradeRecord.objects.bulk_create(records, ignore_conflicts=True)
        # A concurrent insert of one of these exact keys between the two
        # lookups is still counted as ours; rows outside the keys never are.
        inserted = len(self._existing_keys(class_id, month, year, keys) - before)

        if inserted < len(records):
            logger.info(
                f'Dropped {len(records) - inserted} duplicate grade rows for class {class_id} '
                f'({month} {year})'
            )
        return inserted

    def _existing_keys(self, class_id, month, year, keys):
        """Which of the (student, subject) keys have a record in the period."""
        rows = GradeRecord.objects.filter(
            school_class_id=class_id,
            month=month,
            year=year,
            student_id__in={student_id for student_id, _ in keys},
            subject_id__in={subject_id for _, subject_id in keys},
        ).values_list('student_id', 'subject_id')
        return {key for key in rows if key in keys}

    def update_grades(self, records):
        with transaction.atomic():
            GradeRecord.objects.bulk_update(records, GRADE_UPDATE_FIELDS)

    def list_attendance(self, start, end, class_id=None, student_ids=None):
        qs = AttendanceRecord.objects.filter(date__gte=start, date__lte=end)
        if class_id is not None:
            qs = qs.filter(class_assigned_id=class_id)
        if student_ids is not None:
            qs = qs.filter(student_id__in=list(student_ids))
        return list(qs)

    def list_summaries(self, class_id, month, year):
        return list(StudentMonthlySummary.objects.filter(
            school_class_id=class_id,
            month=month,
            year=year
        ).select_related('student').order_by('class_rank'))

    def save_summaries(self, summaries):
        if not summaries:
            return

        first = summaries[0]
        existing = {
            s.student_id: s
            for s in StudentMonthlySummary.objects.filter(
                school_class_id=first.school_class_id,
                month=first.month,
                year=first.year,
                student_id__in=[s.student_id for s in summaries],
            )
        }

        to_create = []
        to_update = []
        for summary in summaries:
            current = existing.get(summary.student_id)
            if current is None:
                to_create.append(summary)
                continue
            for field in SUMMARY_FIELDS:
                setattr(current, field, getattr(summary, field))
            current.month_number = summary.month_number
            to_update.append(current)

        with transaction.atomic():
            if to_create:
                StudentMonthlySummary.objects.bulk_create(to_create)
            if to_update:
                StudentMonthlySummary.objects.bulk_update(
                    to_update, SUMMARY_FIELDS + ['month_number']
                )

    def delete_summaries(self, class_id, month, year, keep_student_ids):
        deleted, _ = StudentMonthlySummary.objects.filter(
            school_class_id=class_id,
            month=month,
            year=year
        ).exclude(student_id__in=list(keep_student_ids)).delete()
        return deleted
