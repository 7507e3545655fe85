from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from academics.models import Class, Subject
from core.choices import MONTH_CHOICES
from students.models import Student


class GradeRecord(models.Model):
    """
    One student's score in one subject for one class/month/year.

    At most one record exists per (student, subject, class, month, year);
    bulk imports upsert on that key. ``percentage`` and ``weighted_score``
    are cached at write time from the subject's max score and coefficient.
    """
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='grade_records',
        db_index=True
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='grade_records',
        db_index=True
    )
    school_class = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='grade_records',
        db_index=True
    )
    month = models.CharField(max_length=20, choices=MONTH_CHOICES)
    month_number = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        help_text='Kept in step with month for ordering'
    )
    year = models.PositiveSmallIntegerField()
    score = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)]
    )
    max_score = models.PositiveIntegerField()
    percentage = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True
    )
    weighted_score = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        null=True,
        blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student_id} - {self.subject_id} ({self.month} {self.year}): {self.score}"

    @property
    def natural_key(self):
        return (self.student_id, self.subject_id)

    class Meta:
        db_table = 'grade_record'
        ordering = ['year', 'month_number', 'student', 'subject']
        verbose_name = 'Grade Record'
        verbose_name_plural = 'Grade Records'
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'subject', 'school_class', 'month', 'year'],
                name='unique_grade_per_period'
            ),
        ]
        indexes = [
            models.Index(fields=['school_class', 'year', 'month_number'], name='grade_class_period_idx'),
            models.Index(fields=['student', 'year'], name='grade_student_year_idx'),
        ]


class StudentMonthlySummary(models.Model):
    """
    Denormalized per-student rollup for one class/month/year.

    Derived entirely from GradeRecord and Subject; rebuilt together with the
    class ranks whenever the class's grades are recalculated.
    """
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='monthly_summaries'
    )
    school_class = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='monthly_summaries'
    )
    month = models.CharField(max_length=20, choices=MONTH_CHOICES)
    month_number = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    year = models.PositiveSmallIntegerField()

    total_score = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    total_max_score = models.PositiveIntegerField(default=0)
    total_weighted_score = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total_coefficient = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('0.00'))
    average = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('0.00'))
    grade_level = models.CharField(max_length=2, blank=True)
    class_rank = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student_id} - {self.month} {self.year}: {self.average} (#{self.class_rank})"

    class Meta:
        db_table = 'student_monthly_summary'
        ordering = ['year', 'month_number', 'class_rank']
        verbose_name = 'Student Monthly Summary'
        verbose_name_plural = 'Student Monthly Summaries'
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'school_class', 'month', 'year'],
                name='unique_summary_per_period'
            ),
        ]
        indexes = [
            models.Index(fields=['school_class', 'year', 'month_number'], name='summary_class_period_idx'),
        ]
