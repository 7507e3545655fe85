from django.db import models

from core.choices import Gender


class Student(models.Model):
    """
    Represents a student enrolled in the school.
    """
    student_id = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique student code printed on sheets and import files"
    )
    khmer_name = models.CharField(max_length=150, blank=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    gender = models.CharField(max_length=1, choices=Gender.choices)
    date_of_birth = models.DateField(null=True, blank=True)

    current_class = models.ForeignKey(
        'academics.Class',
        on_delete=models.PROTECT,
        related_name='students',
        null=True,
        blank=True
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        verbose_name = "Student"
        verbose_name_plural = "Students"

    def __str__(self):
        return f"{self.display_name} ({self.student_id})"

    @property
    def display_name(self):
        """Khmer name when recorded, otherwise 'Last First'."""
        return self.khmer_name or f"{self.last_name} {self.first_name}"

    @property
    def is_female(self):
        return self.gender == Gender.FEMALE
