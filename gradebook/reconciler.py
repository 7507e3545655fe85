"""
Score reconciliation: diff a batch of submitted scores against stored
grade records and apply the minimal set of creates and updates.

Bad rows never fail the batch; they are collected in ``errors``. Creates go
in as one duplicate-tolerant bulk insert, updates in fixed-size chunks with
one transaction per chunk so a failing chunk leaves the others intact.
Summaries are not refreshed here; see summaries.recalculate_class_summaries.
"""
from decimal import Decimal, InvalidOperation
from typing import Dict, List
import logging

from django.db import DatabaseError
from django.utils import timezone

from . import config
from .grading import percentage, quantize, weighted_score
from .models import GradeRecord
from .periods import normalize_month, normalize_year

logger = logging.getLogger(__name__)

MISSING = object()


class ReconcileResult:
    """Outcome counts of one reconciliation call."""

    def __init__(self):
        self.created = 0
        self.updated = 0
        self.skipped = 0
        self.errors: List[Dict] = []
        self.failed_batches: List[Dict] = []

    @property
    def failed(self):
        return len(self.errors) + sum(b['rows'] for b in self.failed_batches)

    @property
    def succeeded(self):
        return self.created + self.updated + self.skipped

    def to_dict(self) -> Dict:
        return {
            'created': self.created,
            'updated': self.updated,
            'skipped': self.skipped,
            'total': self.created + self.updated,
            'errors': self.errors,
            'failed_batches': self.failed_batches,
            'summary': {'success': self.succeeded, 'failed': self.failed},
        }


def _get(row, field):
    if isinstance(row, dict):
        return row.get(field, MISSING)
    return getattr(row, field, MISSING)


def _to_id(value):
    """
    Positive integer primary key, or None.

    Digit strings are accepted since ids arrive as text from forms and
    spreadsheets.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdecimal():
            return None
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def _validate_rows(store, incoming, result):
    """
    Check each row; return (valid rows keyed by natural key, subjects by id).

    Ids are coerced per row before anything reaches storage, then checked
    against one batched subject lookup and one batched student lookup.
    A later row for the same (student, subject) replaces an earlier one and
    the earlier row counts as skipped.
    """
    # ========== PHASE 1: Shape and id checks ==========
    parsed = []
    for index, row in enumerate(incoming):
        student_id = _get(row, 'student_id')
        subject_id = _get(row, 'subject_id')
        score = _get(row, 'score')

        if student_id in (MISSING, None, '') or subject_id in (MISSING, None, '') or score is MISSING:
            result.errors.append({'index': index, 'row': row, 'reason': 'Missing required fields'})
            continue

        student_pk = _to_id(student_id)
        if student_pk is None:
            result.errors.append({'index': index, 'row': row, 'reason': 'Invalid student ID'})
            continue
        subject_pk = _to_id(subject_id)
        if subject_pk is None:
            result.errors.append({'index': index, 'row': row, 'reason': 'Invalid subject ID'})
            continue
        parsed.append((index, row, student_pk, subject_pk, score))

    # ========== PHASE 2: Batched catalog lookups ==========
    subject_ids = {subject_pk for _, _, _, subject_pk, _ in parsed}
    student_ids = {student_pk for _, _, student_pk, _, _ in parsed}
    subjects_by_id = {
        s.pk: s for s in store.list_subjects(subject_ids=subject_ids)
        if s.is_active
    } if subject_ids else {}
    known_students = store.existing_student_ids(student_ids) if student_ids else set()

    # ========== PHASE 3: Catalog and score checks ==========
    valid = {}
    for index, row, student_pk, subject_pk, score in parsed:
        subject = subjects_by_id.get(subject_pk)
        if subject is None:
            result.errors.append({'index': index, 'row': row, 'reason': 'Invalid subject ID'})
            continue
        if student_pk not in known_students:
            result.errors.append({'index': index, 'row': row, 'reason': 'Invalid student ID'})
            continue

        if score is not None:
            try:
                score = Decimal(str(score))
            except (InvalidOperation, ValueError):
                result.errors.append({'index': index, 'row': row, 'reason': f'Invalid score {score!r}'})
                continue
            if not score.is_finite() or score < 0 or score > subject.max_score:
                result.errors.append({
                    'index': index,
                    'row': row,
                    'reason': f'Score out of range (0-{subject.max_score})',
                })
                continue

        key = (student_pk, subject_pk)
        if key in valid:
            result.skipped += 1
        valid[key] = score

    result.errors.sort(key=lambda error: error['index'])
    return valid, subjects_by_id


def _new_record(student_id, subject, class_id, month, month_number, year, score, now):
    return GradeRecord(
        student_id=student_id,
        subject_id=subject.pk,
        school_class_id=class_id,
        month=month,
        month_number=month_number,
        year=year,
        score=score,
        max_score=subject.max_score,
        percentage=_cached_percentage(score, subject),
        weighted_score=_cached_weighted(score, subject),
        created_at=now,
        updated_at=now,
    )


def _cached_percentage(score, subject):
    if score is None:
        return None
    return quantize(percentage(score, subject.max_score))


def _cached_weighted(score, subject):
    if score is None:
        return None
    return quantize(weighted_score(score, subject.coefficient))


def _scores_differ(stored, incoming):
    if stored is None or incoming is None:
        return stored is not incoming
    return Decimal(stored) != incoming


def reconcile(store, class_id, month, year, incoming, batch_size=None):
    """
    Upsert a batch of (student, subject, score) rows for a class/period.

    Args:
        store: BaseGradeStore
        class_id: Class the scores belong to
        month: Khmer/English month name or number
        year: Academic year
        incoming: iterable of {'student_id', 'subject_id', 'score'} dicts
        batch_size: Rows per update transaction (default UPDATE_BATCH_SIZE)

    Returns:
        ReconcileResult

    Raises:
        Class.DoesNotExist: unknown class
        InvalidPeriod: unknown month or year
        DatabaseError: lookup or bulk insert failure
    """
    month, month_number = normalize_month(month)
    year = normalize_year(year)
    class_id = store.get_class(class_id).pk
    batch_size = batch_size or config.UPDATE_BATCH_SIZE

    incoming = list(incoming)
    result = ReconcileResult()

    valid, subjects_by_id = _validate_rows(store, incoming, result)
    logger.info(
        f'Reconciling {len(incoming)} rows for class {class_id} ({month} {year}): '
        f'{len(valid)} valid, {len(result.errors)} errors'
    )
    if not valid:
        return result

    existing = store.find_grades(class_id, month, year, valid.keys())

    now = timezone.now()
    to_create = []
    to_update = []
    for (student_id, subject_id), score in valid.items():
        subject = subjects_by_id[subject_id]
        record = existing.get((student_id, subject_id))

        if record is None:
            to_create.append(_new_record(
                student_id, subject, class_id, month, month_number, year, score, now
            ))
        elif _scores_differ(record.score, score):
            record.score = score
            record.max_score = subject.max_score
            record.percentage = _cached_percentage(score, subject)
            record.weighted_score = _cached_weighted(score, subject)
            record.updated_at = now
            to_update.append(record)
        else:
            result.skipped += 1

    logger.info(f'Operations: {len(to_create)} creates, {len(to_update)} updates')

    if to_create:
        result.created = store.create_grades(class_id, month, year, to_create)
        # Rows a concurrent writer inserted first are dropped, not failed
        result.skipped += len(to_create) - result.created

    for batch_index, start in enumerate(range(0, len(to_update), batch_size)):
        batch = to_update[start:start + batch_size]
        try:
            store.update_grades(batch)
        except DatabaseError as e:
            logger.error(
                f'Update batch {batch_index} ({len(batch)} rows) failed for class {class_id}: {e}'
            )
            result.failed_batches.append({
                'batch': batch_index,
                'rows': len(batch),
                'keys': [r.natural_key for r in batch],
                'error': str(e),
            })
            continue
        result.updated += len(batch)

    logger.info(
        f'Reconciled class {class_id} ({month} {year}): created={result.created} '
        f'updated={result.updated} skipped={result.skipped} errors={len(result.errors)} '
        f'failed_batches={len(result.failed_batches)}'
    )
    return result
