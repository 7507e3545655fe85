from django.db import models
from django.utils.translation import gettext_lazy as _


class Gender(models.TextChoices):
    MALE = 'M', _('Male')
    FEMALE = 'F', _('Female')


class Track(models.TextChoices):
    SCIENCE = 'science', _('Science')
    SOCIAL = 'social', _('Social Studies')
    COMMON = 'common', _('Common')


# Khmer calendar months: (number, Khmer name, English name)
MONTHS = (
    (1, 'មករា', 'January'),
    (2, 'កុម្ភៈ', 'February'),
    (3, 'មីនា', 'March'),
    (4, 'មេសា', 'April'),
    (5, 'ឧសភា', 'May'),
    (6, 'មិថុនា', 'June'),
    (7, 'កក្កដា', 'July'),
    (8, 'សីហា', 'August'),
    (9, 'កញ្ញា', 'September'),
    (10, 'តុលា', 'October'),
    (11, 'វិច្ឆិកា', 'November'),
    (12, 'ធ្នូ', 'December'),
)

MONTH_CHOICES = [(name, name) for _number, name, _english in MONTHS]
