"""
JSON endpoints for the grade engine.

Views only translate request parameters into engine calls and engine
results into JSON; all arithmetic lives in the engine modules.
"""
from functools import wraps
import json
import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ObjectDoesNotExist
from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from . import config, reports
from .exceptions import GradebookError, ImportFormatError
from .importer import import_grades
from .reconciler import reconcile
from .storage import DjangoGradeStore
from .summaries import class_summaries, recalculate_class_summaries

logger = logging.getLogger(__name__)


def _json(data, status=200):
    return JsonResponse(data, status=status, encoder=DjangoJSONEncoder, json_dumps_params={'ensure_ascii': False})


def _error(message, status, **extra):
    data = {'success': False, 'error': message}
    data.update(extra)
    return _json(data, status=status)


def engine_view(view_func):
    """
    Map engine exceptions to JSON error responses.

    Unknown class/subject -> 404, bad period or import header -> 400.
    Storage errors are left to Django's error handling.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except ObjectDoesNotExist as e:
            return _error(str(e) or 'Not found', 404)
        except ImportFormatError as e:
            return _error('Invalid spreadsheet header', 400, errors=e.errors)
        except (GradebookError, ValueError) as e:
            return _error(str(e), 400)
    return wrapper


def _flag(value):
    return str(value).lower() in ('1', 'true', 'yes', 'on')


# ============ Reports ============

@login_required
@require_GET
@engine_view
def grid(request, class_id):
    payload = reports.grid(
        DjangoGradeStore(), class_id, request.GET.get('month'), request.GET.get('year')
    )
    return _json({'success': True, 'data': payload})


@login_required
@require_GET
@engine_view
def monthly_report(request, class_id):
    payload = reports.monthly_report(
        DjangoGradeStore(), class_id, request.GET.get('month'), request.GET.get('year')
    )
    return _json({'success': True, 'data': payload})


@login_required
@require_GET
@engine_view
def grade_wide_report(request, grade):
    payload = reports.grade_wide_report(
        DjangoGradeStore(), grade, request.GET.get('month'), request.GET.get('year')
    )
    return _json({'success': True, 'data': payload})


@login_required
@require_GET
@engine_view
def tracking_book(request, class_id):
    payload = reports.tracking_book(
        DjangoGradeStore(),
        class_id,
        request.GET.get('year'),
        month=request.GET.get('month'),
        subject_id=request.GET.get('subject_id'),
    )
    return _json({'success': True, 'data': payload})


@login_required
@require_GET
@engine_view
def statistics(request, class_id):
    payload = reports.statistics(
        DjangoGradeStore(), class_id, request.GET.get('month'), request.GET.get('year')
    )
    return _json({'success': True, 'data': payload})


@login_required
@require_GET
@engine_view
def summary_list(request, class_id):
    """Stored monthly summaries of a class in rank order."""
    payload = class_summaries(
        DjangoGradeStore(), class_id, request.GET.get('month'), request.GET.get('year')
    )
    return _json({'success': True, 'data': payload})


# ============ Score entry ============

@login_required
@require_POST
@engine_view
def bulk_save(request):
    """
    Reconcile a JSON batch of scores.

    Body: {"class_id", "month", "year", "grades": [{"student_id",
    "subject_id", "score"}], "refresh_summaries": false}
    """
    try:
        body = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error('Request body must be JSON', 400)

    if not isinstance(body, dict):
        return _error('Request body must be a JSON object', 400)
    grades = body.get('grades')
    if not isinstance(grades, list):
        return _error("'grades' must be a list", 400)
    if not body.get('class_id'):
        return _error("'class_id' is required", 400)

    store = DjangoGradeStore()
    result = reconcile(store, body['class_id'], body.get('month'), body.get('year'), grades)
    logger.info(f'Bulk save by {request.user}: {result.to_dict()["summary"]}')

    data = {'success': True, 'data': result.to_dict()}
    if _flag(body.get('refresh_summaries', False)):
        summaries = recalculate_class_summaries(
            store, body['class_id'], body.get('month'), body.get('year')
        )
        data['data']['summaries_refreshed'] = len(summaries)
    return _json(data)


@login_required
@require_POST
@engine_view
def import_upload(request):
    """Import an .xlsx grade sheet for a class/period."""
    file = request.FILES.get('file')
    if not file:
        return _error('No file uploaded.', 400)

    if file.size > config.MAX_FILE_SIZE:
        return _error(f'File too large. Maximum size is {config.MAX_FILE_SIZE // (1024 * 1024)}MB.', 400)

    if not file.name.endswith('.xlsx'):
        return _error('Please upload an Excel file (.xlsx).', 400)

    class_id = request.POST.get('class_id')
    if not class_id:
        return _error("'class_id' is required", 400)

    store = DjangoGradeStore()
    month, year = request.POST.get('month'), request.POST.get('year')
    result = import_grades(store, class_id, month, year, file)

    data = {'success': True, 'data': result.to_dict()}
    if _flag(request.POST.get('refresh_summaries', False)):
        summaries = recalculate_class_summaries(store, class_id, month, year)
        data['data']['summaries_refreshed'] = len(summaries)
    return _json(data)


@login_required
@require_POST
@engine_view
def refresh_summaries(request, class_id):
    summaries = recalculate_class_summaries(
        DjangoGradeStore(), class_id, request.POST.get('month'), request.POST.get('year')
    )
    return _json({
        'success': True,
        'data': {
            'summaries': [
                {
                    'student_id': s.student_id,
                    'total_score': s.total_score,
                    'total_coefficient': s.total_coefficient,
                    'average': s.average,
                    'grade_level': s.grade_level,
                    'class_rank': s.class_rank,
                }
                for s in summaries
            ],
        },
    })
