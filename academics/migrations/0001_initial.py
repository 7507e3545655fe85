from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Class',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='e.g., 10A, 12 Science B', max_length=50)),
                ('grade', models.PositiveSmallIntegerField(help_text='Grade level (7-12)', validators=[django.core.validators.MinValueValidator(7), django.core.validators.MaxValueValidator(12)])),
                ('track', models.CharField(blank=True, choices=[('science', 'Science'), ('social', 'Social Studies')], help_text='Academic track, only meaningful for grades 11 and 12', max_length=10, null=True)),
                ('class_teacher_name', models.CharField(blank=True, help_text='Homeroom teacher shown on printed reports', max_length=150)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Class',
                'verbose_name_plural': 'Classes',
                'ordering': ['grade', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Subject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='e.g., MATH-G10, PHY-G12-SCIENCE', max_length=40, unique=True)),
                ('name_kh', models.CharField(max_length=100)),
                ('name_en', models.CharField(blank=True, max_length=100)),
                ('grade', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(7), django.core.validators.MaxValueValidator(12)])),
                ('track', models.CharField(blank=True, choices=[('science', 'Science'), ('social', 'Social Studies'), ('common', 'Common')], max_length=10, null=True)),
                ('max_score', models.PositiveIntegerField(default=100, validators=[django.core.validators.MinValueValidator(1)])),
                ('coefficient', models.DecimalField(decimal_places=2, default=Decimal('1.00'), help_text='Weight of the subject in the average', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Subject',
                'verbose_name_plural': 'Subjects',
                'ordering': ['grade', 'code'],
                'indexes': [models.Index(fields=['grade', 'is_active'], name='subject_grade_active_idx')],
            },
        ),
    ]
