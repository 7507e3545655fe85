from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


MONTH_CHOICES = [
    ('មករា', 'មករា'), ('កុម្ភៈ', 'កុម្ភៈ'), ('មីនា', 'មីនា'), ('មេសា', 'មេសា'),
    ('ឧសភា', 'ឧសភា'), ('មិថុនា', 'មិថុនា'), ('កក្កដា', 'កក្កដា'), ('សីហា', 'សីហា'),
    ('កញ្ញា', 'កញ្ញា'), ('តុលា', 'តុលា'), ('វិច្ឆិកា', 'វិច្ឆិកា'), ('ធ្នូ', 'ធ្នូ'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='GradeRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('month', models.CharField(choices=MONTH_CHOICES, max_length=20)),
                ('month_number', models.PositiveSmallIntegerField(help_text='Kept in step with month for ordering', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('year', models.PositiveSmallIntegerField()),
                ('score', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('max_score', models.PositiveIntegerField()),
                ('percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('weighted_score', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('school_class', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grade_records', to='academics.class')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grade_records', to='students.student')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grade_records', to='academics.subject')),
            ],
            options={
                'verbose_name': 'Grade Record',
                'verbose_name_plural': 'Grade Records',
                'db_table': 'grade_record',
                'ordering': ['year', 'month_number', 'student', 'subject'],
                'indexes': [
                    models.Index(fields=['school_class', 'year', 'month_number'], name='grade_class_period_idx'),
                    models.Index(fields=['student', 'year'], name='grade_student_year_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'subject', 'school_class', 'month', 'year'), name='unique_grade_per_period'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StudentMonthlySummary',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('month', models.CharField(choices=MONTH_CHOICES, max_length=20)),
                ('month_number', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('year', models.PositiveSmallIntegerField()),
                ('total_score', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('total_max_score', models.PositiveIntegerField(default=0)),
                ('total_weighted_score', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('total_coefficient', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=7)),
                ('average', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=7)),
                ('grade_level', models.CharField(blank=True, max_length=2)),
                ('class_rank', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('school_class', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_summaries', to='academics.class')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_summaries', to='students.student')),
            ],
            options={
                'verbose_name': 'Student Monthly Summary',
                'verbose_name_plural': 'Student Monthly Summaries',
                'db_table': 'student_monthly_summary',
                'ordering': ['year', 'month_number', 'class_rank'],
                'indexes': [
                    models.Index(fields=['school_class', 'year', 'month_number'], name='summary_class_period_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'school_class', 'month', 'year'), name='unique_summary_per_period'),
                ],
            },
        ),
    ]
