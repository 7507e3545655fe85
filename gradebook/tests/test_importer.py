from decimal import Decimal
from io import BytesIO

import openpyxl
from django.test import SimpleTestCase

from gradebook.exceptions import ImportFormatError
from gradebook.importer import import_grades, map_columns
from .fakes import InMemoryGradeStore, make_class, make_student, make_subject


def build_workbook(rows):
    """Return an in-memory .xlsx with the given rows on the first sheet."""
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


class ColumnMappingTest(SimpleTestCase):
    """Tests for header-row mapping."""

    def setUp(self):
        self.math = make_subject(10, 'MATH-G10', 10, name_kh='គណិតវិទ្យា', name_en='Mathematics')
        self.eng = make_subject(11, 'ENG-G10', 10, max_score=50, name_kh='ភាសាអង់គ្លេស', name_en='English')
        self.subjects = [self.math, self.eng]

    def test_english_and_code_headers(self):
        columns = map_columns(['Student ID', 'Student Name', 'MATH-G10', 'english'], self.subjects)
        self.assertEqual(columns.fields, {'student_id': 0, 'student_name': 1})
        self.assertEqual(columns.subjects, {2: self.math, 3: self.eng})

    def test_khmer_headers(self):
        columns = map_columns(['លេខសិស្ស', 'ខែ', 'ឆ្នាំ', 'គណិតវិទ្យា'], self.subjects)
        self.assertEqual(columns.fields, {'student_id': 0, 'month': 1, 'year': 2})
        self.assertEqual(columns.subjects, {3: self.math})

    def test_blank_headers_ignored(self):
        columns = map_columns(['studentId', None, '  ', 'Mathematics'], self.subjects)
        self.assertEqual(columns.subjects, {3: self.math})

    def test_all_problems_reported_together(self):
        with self.assertRaises(ImportFormatError) as ctx:
            map_columns(['Homework', 'Mathematics', 'MATH-G10'], self.subjects)
        errors = ctx.exception.errors
        self.assertIn("Unrecognized column 'Homework'", errors)
        self.assertIn('Duplicate column for subject MATH-G10', errors)
        self.assertIn('Missing student ID or student name column', errors)

    def test_no_subject_columns(self):
        with self.assertRaises(ImportFormatError) as ctx:
            map_columns(['Student ID'], self.subjects)
        self.assertEqual(ctx.exception.errors, ['No subject columns found'])

    def test_ambiguous_name(self):
        other = make_subject(12, 'MATH2-G10', 10, name_en='Mathematics')
        with self.assertRaises(ImportFormatError) as ctx:
            map_columns(['Student ID', 'Mathematics'], self.subjects + [other])
        self.assertIn("Ambiguous column 'Mathematics' matches 2 subjects", ctx.exception.errors)

    def test_unknown_version(self):
        with self.assertRaises(ImportFormatError):
            map_columns(['Student ID', 'MATH-G10'], self.subjects, version=99)


class ImportGradesTest(SimpleTestCase):
    """Tests for importing a grade sheet into the store."""

    def setUp(self):
        self.klass = make_class(1, 10, name='10A')
        self.math = make_subject(10, 'MATH-G10', 10, name_en='Mathematics')
        self.eng = make_subject(11, 'ENG-G10', 10, max_score=50, name_en='English')
        self.store = InMemoryGradeStore(
            classes=[self.klass],
            students=[
                make_student(1, 'S001', 1, first_name='Sok', last_name='Chea'),
                make_student(2, 'S002', 1, khmer_name='ដារ៉ា'),
                make_student(3, 'S003', 2),
            ],
            subjects=[self.math, self.eng],
        )

    def run_import(self, rows, month='មករា', year=2025):
        return import_grades(self.store, 1, month, year, build_workbook(rows))

    def test_successful_import(self):
        result = self.run_import([
            ['Student ID', 'Student Name', 'Mathematics', 'English'],
            ['S001', 'Chea Sok', 85.5, 40],
            [None, 'ដារ៉ា', 70, None],
        ])
        data = result.to_dict()

        self.assertEqual(result.rows_read, 2)
        self.assertEqual(result.row_errors, [])
        self.assertEqual(data['created'], 3)
        self.assertEqual(data['summary'], {'success': 3, 'failed': 0})

        scores = {(g.student_id, g.subject_id): g.score for g in self.store.grades}
        self.assertEqual(scores, {(1, 10): Decimal('85.5'), (1, 11): Decimal('40'), (2, 10): Decimal('70')})

    def test_reimport_is_idempotent(self):
        rows = [['Student ID', 'MATH-G10'], ['S001', 60]]
        self.run_import(rows)
        result = self.run_import(rows)
        self.assertEqual(result.reconcile_result.skipped, 1)
        self.assertEqual(len(self.store.grades), 1)

    def test_row_errors(self):
        """Bad rows are reported and the good ones still land."""
        result = self.run_import([
            ['Student ID', 'Mathematics', 'English'],
            ['S001', 'abc', 45],
            ['S999', 50, 20],
            ['S003', 50, 20],
            ['S002', 60, 70],
            [None, None, None],
        ])

        self.assertEqual(result.rows_read, 4)
        self.assertEqual([e['row'] for e in result.row_errors], [2, 3, 4])
        self.assertIn('invalid number', result.row_errors[0]['reason'])

        # Score 70 is over ENG's max of 50
        self.assertEqual(len(result.reconcile_result.errors), 1)
        self.assertEqual(result.reconcile_result.created, 2)
        self.assertEqual(result.to_dict()['summary'], {'success': 2, 'failed': 4})

    def test_row_for_other_period(self):
        result = self.run_import([
            ['Student ID', 'Month', 'Year', 'Mathematics'],
            ['S001', 'January', 2025, 50],
            ['S002', 'កុម្ភៈ', 2025, 50],
            ['S002', 1, 2024, 50],
        ])
        self.assertEqual([e['row'] for e in result.row_errors], [3, 4])
        self.assertEqual(len(self.store.grades), 1)

    def test_bad_header_rejects_whole_file(self):
        with self.assertRaises(ImportFormatError):
            self.run_import([['Student ID', 'Physics'], ['S001', 50]])
        self.assertEqual(self.store.grades, [])

    def test_empty_sheet(self):
        with self.assertRaises(ImportFormatError):
            self.run_import([])
