"""
Spreadsheet grade import.

The header row is mapped once, through an explicit versioned alias table,
before any data row is read. Fixed columns identify the student (and
optionally restate the period); every other column must name one of the
class's subjects by code, Khmer name or English name.
"""
from decimal import Decimal, InvalidOperation
from typing import Dict, List
import logging

import openpyxl

from . import config
from .exceptions import ImportFormatError
from .periods import normalize_month, normalize_year
from .reconciler import reconcile
from .subjects import resolve_subjects

logger = logging.getLogger(__name__)


GRADE_IMPORT_COLUMNS = {
    1: {
        'student_id': ('studentId', 'Student ID', 'លេខសិស្ស'),
        'student_name': ('studentName', 'Student Name', 'ឈ្មោះសិស្ស'),
        'month': ('month', 'Month', 'ខែ'),
        'year': ('year', 'Year', 'ឆ្នាំ'),
    },
}


class ColumnMap:
    """Resolved header row: fixed field positions plus subject columns."""

    def __init__(self, fields: Dict[str, int], subjects: Dict[int, object]):
        self.fields = fields
        self.subjects = subjects

    def value(self, row, field):
        index = self.fields.get(field)
        if index is None or index >= len(row):
            return None
        return row[index]


def _clean(value):
    if value is None:
        return ''
    return str(value).strip()


def map_columns(header, subjects, version=None) -> ColumnMap:
    """
    Map a header row to import fields and subjects.

    Raises:
        ImportFormatError: listing every unknown, ambiguous or missing column
    """
    version = version or config.IMPORT_COLUMNS_VERSION
    try:
        aliases = GRADE_IMPORT_COLUMNS[version]
    except KeyError:
        raise ImportFormatError([f'Unknown import column version {version}'])

    field_by_alias = {
        alias.casefold(): field
        for field, names in aliases.items()
        for alias in names
    }

    subject_names = {}
    for subject in subjects:
        for name in (subject.code, subject.name_kh, subject.name_en):
            if name:
                subject_names.setdefault(name.casefold(), set()).add(subject)

    fields = {}
    subject_columns = {}
    errors = []
    for index, raw in enumerate(header):
        name = _clean(raw)
        if not name:
            continue
        key = name.casefold()

        field = field_by_alias.get(key)
        if field is not None:
            if field in fields:
                errors.append(f"Duplicate column '{name}'")
            else:
                fields[field] = index
            continue

        matches = subject_names.get(key)
        if not matches:
            errors.append(f"Unrecognized column '{name}'")
        elif len(matches) > 1:
            errors.append(f"Ambiguous column '{name}' matches {len(matches)} subjects")
        else:
            subject = next(iter(matches))
            if subject in subject_columns.values():
                errors.append(f"Duplicate column for subject {subject.code}")
            else:
                subject_columns[index] = subject

    if 'student_id' not in fields and 'student_name' not in fields:
        errors.append('Missing student ID or student name column')
    if not subject_columns:
        errors.append('No subject columns found')

    if errors:
        raise ImportFormatError(errors)
    return ColumnMap(fields, subject_columns)


class ImportResult:
    """Row-level problems plus the outcome of the reconciliation."""

    def __init__(self, rows_read, row_errors, reconcile_result):
        self.rows_read = rows_read
        self.row_errors: List[Dict] = row_errors
        self.reconcile_result = reconcile_result

    def to_dict(self) -> Dict:
        data = self.reconcile_result.to_dict()
        data['rows_read'] = self.rows_read
        data['row_errors'] = self.row_errors
        data['summary'] = {
            'success': self.reconcile_result.succeeded,
            'failed': self.reconcile_result.failed + len(self.row_errors),
        }
        return data


def read_rows(file):
    """Header and data rows of the first worksheet."""
    wb = openpyxl.load_workbook(file, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if not rows:
        raise ImportFormatError(['The worksheet is empty'])
    return rows[0], rows[1:]


def _check_period(columns, row, month, year):
    """Reason string when a row restates a different period, else None."""
    row_month = columns.value(row, 'month')
    if _clean(row_month):
        try:
            if normalize_month(row_month)[0] != month:
                return f"Month '{row_month}' does not match {month}"
        except ValueError:
            return f"Invalid month '{row_month}'"
    row_year = columns.value(row, 'year')
    if _clean(row_year):
        try:
            if normalize_year(row_year) != year:
                return f"Year '{row_year}' does not match {year}"
        except ValueError:
            return f"Invalid year '{row_year}'"
    return None


def import_grades(store, class_id, month, year, file, version=None):
    """
    Import a grade sheet for one class and period.

    Args:
        store: BaseGradeStore
        class_id: Class the sheet belongs to
        month, year: Period the scores are recorded for
        file: Path or file object of an .xlsx workbook
        version: GRADE_IMPORT_COLUMNS version (default IMPORT_COLUMNS_VERSION)

    Returns:
        ImportResult

    Raises:
        ImportFormatError: the header row cannot be mapped
    """
    month, _ = normalize_month(month)
    year = normalize_year(year)
    class_obj = store.get_class(class_id)

    subjects = resolve_subjects(store, class_obj.grade, class_obj.track)
    header, data_rows = read_rows(file)
    columns = map_columns(header, subjects, version)

    students = store.list_students([class_obj.pk])
    by_code = {s.student_id.casefold(): s for s in students}
    by_name = {}
    for student in students:
        by_name.setdefault(student.display_name.casefold(), []).append(student)

    incoming = []
    row_errors = []
    rows_read = 0
    for row_num, row in enumerate(data_rows, 2):
        if not row or all(_clean(cell) == '' for cell in row):
            continue
        rows_read += 1

        code = _clean(columns.value(row, 'student_id'))
        name = _clean(columns.value(row, 'student_name'))
        student = by_code.get(code.casefold()) if code else None
        if student is None and name:
            candidates = by_name.get(name.casefold(), [])
            if len(candidates) == 1:
                student = candidates[0]
        if student is None:
            row_errors.append({
                'row': row_num,
                'reason': f"Student '{code or name}' not found in class {class_obj}",
            })
            continue

        period_error = _check_period(columns, row, month, year)
        if period_error:
            row_errors.append({'row': row_num, 'reason': period_error})
            continue

        for index, subject in columns.subjects.items():
            value = row[index] if index < len(row) else None
            if _clean(value) == '':
                continue
            try:
                score = Decimal(_clean(value))
            except InvalidOperation:
                row_errors.append({
                    'row': row_num,
                    'reason': f"{subject.code}: invalid number '{value}'",
                })
                continue
            incoming.append({
                'student_id': student.pk,
                'subject_id': subject.pk,
                'score': score,
            })

    logger.info(
        f'Import for class {class_obj} ({month} {year}): {rows_read} rows, '
        f'{len(incoming)} scores, {len(row_errors)} row errors'
    )
    result = reconcile(store, class_obj.pk, month, year, incoming)
    return ImportResult(rows_read, row_errors, result)
