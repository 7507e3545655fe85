from django.urls import path
from . import views

app_name = 'gradebook'

urlpatterns = [
    # Reports
    path('classes/<int:class_id>/grid/', views.grid, name='grid'),
    path('classes/<int:class_id>/monthly-report/', views.monthly_report, name='monthly_report'),
    path('classes/<int:class_id>/tracking-book/', views.tracking_book, name='tracking_book'),
    path('classes/<int:class_id>/statistics/', views.statistics, name='statistics'),
    path('classes/<int:class_id>/summaries/', views.summary_list, name='summaries'),
    path('grades/<int:grade>/report/', views.grade_wide_report, name='grade_wide_report'),

    # Score entry
    path('scores/bulk/', views.bulk_save, name='bulk_save'),
    path('scores/import/', views.import_upload, name='import_upload'),
    path('classes/<int:class_id>/summaries/refresh/', views.refresh_summaries, name='refresh_summaries'),
]
