from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.choices import Track


GRADE_LEVEL_VALIDATORS = [MinValueValidator(7), MaxValueValidator(12)]


class Class(models.Model):
    """
    A class/classroom grouping of students.

    Grades 11 and 12 are split into academic tracks (science/social);
    a class in those grades belongs to exactly one track or none.
    """
    name = models.CharField(
        max_length=50,
        help_text="e.g., 10A, 12 Science B"
    )
    grade = models.PositiveSmallIntegerField(
        validators=GRADE_LEVEL_VALIDATORS,
        help_text="Grade level (7-12)"
    )
    track = models.CharField(
        max_length=10,
        choices=[(Track.SCIENCE, Track.SCIENCE.label), (Track.SOCIAL, Track.SOCIAL.label)],
        null=True,
        blank=True,
        help_text="Academic track, only meaningful for grades 11 and 12"
    )
    class_teacher_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Homeroom teacher shown on printed reports"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['grade', 'name']
        verbose_name = "Class"
        verbose_name_plural = "Classes"

    def __str__(self):
        return self.name


class Subject(models.Model):
    """
    A subject taught at one grade level.

    Coefficient and max score are fixed for the subject; they never vary
    per student. ``track`` is null or 'common' for subjects shared by all
    tracks of the grade.
    """
    code = models.CharField(
        max_length=40,
        unique=True,
        help_text="e.g., MATH-G10, PHY-G12-SCIENCE"
    )
    name_kh = models.CharField(max_length=100)
    name_en = models.CharField(max_length=100, blank=True)
    grade = models.PositiveSmallIntegerField(validators=GRADE_LEVEL_VALIDATORS)
    track = models.CharField(
        max_length=10,
        choices=Track.choices,
        null=True,
        blank=True
    )
    max_score = models.PositiveIntegerField(
        default=100,
        validators=[MinValueValidator(1)]
    )
    coefficient = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('1.00'),
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Weight of the subject in the average"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['grade', 'code']
        verbose_name = "Subject"
        verbose_name_plural = "Subjects"
        indexes = [
            models.Index(fields=['grade', 'is_active'], name='subject_grade_active_idx'),
        ]

    def __str__(self):
        return f"{self.name_kh} ({self.code})"

    @property
    def base_code(self):
        """Catalog code without grade/track suffixes (MATH-G12-SCIENCE -> MATH)."""
        return self.code.split('-')[0]


class AttendanceRecord(models.Model):
    class Status(models.TextChoices):
        PRESENT = 'PRESENT', _('Present')
        ABSENT = 'ABSENT', _('Absent')
        LATE = 'LATE', _('Late')
        EXCUSED = 'EXCUSED', _('Excused')
        PERMISSION = 'PERMISSION', _('Absent with permission')

    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )
    date = models.DateField(default=timezone.now)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PRESENT)
    remarks = models.CharField(max_length=100, blank=True)

    class Meta:
        unique_together = ['student', 'date']
        ordering = ['-date']
        indexes = [
            models.Index(fields=['class_assigned', 'date'], name='attendance_class_date_idx'),
        ]

    def __str__(self):
        return f"{self.student_id} - {self.date}: {self.status}"
