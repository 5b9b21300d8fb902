"""
Spreadsheet export of calculated class results.
"""
import openpyxl
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from . import config

STATISTICS_COLUMNS = [
    ('first_term', 'First Term'),
    ('mid_year', 'Mid-Year'),
    ('second_term', 'Second Term'),
    ('annual_pursuit', 'Annual Pursuit'),
    ('final_grade', 'Final Grade'),
]


def _styles():
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color=config.EXCEL_HEADER_COLOR, end_color=config.EXCEL_HEADER_COLOR, fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    return header_font, header_fill, thin_border


def _write_header(ws, headers):
    header_font, header_fill, thin_border = _styles()
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = thin_border

    ws.column_dimensions['A'].width = 8
    ws.column_dimensions['B'].width = 30
    for col in range(3, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 16


def _write_row(ws, row, values):
    _, _, thin_border = _styles()
    for col, value in enumerate(values, 1):
        cell = ws.cell(row=row, column=col, value=value)
        cell.border = thin_border
        if col > 2:
            cell.alignment = Alignment(horizontal='center')


def build_results_sheet(ws, class_results):
    """One row per student: deciding final grade per subject and the overall result."""
    ws.title = "Results"
    subjects = [subject.name for subject in class_results.subjects]
    _write_header(ws, ["#", "Student Name"] + subjects + ["Decision Points", "Result"])

    for index, (student, outcome) in enumerate(class_results, 1):
        finals = []
        for name in subjects:
            grade = outcome.grades[name]
            finals.append('Exempt' if grade.is_exempt else grade.effective_final)
        _write_row(
            ws, index + 1,
            [index, student.full_name] + finals + [outcome.decisions.amount_granted, outcome.result.message]
        )


def build_statistics_sheet(ws, subject_reports):
    """Pass/fail counts per subject and result column."""
    ws.title = "Statistics"
    _write_header(ws, ["#", "Subject", "Column", "Total", "Passed", "Failed", "Pass Rate"])

    row = 2
    for index, (subject_name, report) in enumerate(subject_reports.items(), 1):
        for key, label in STATISTICS_COLUMNS:
            stats = report[key]
            _write_row(
                ws, row,
                [index, subject_name, label, stats.total, stats.passed, stats.failed, stats.pass_rate_display]
            )
            row += 1


def build_decision_log_sheet(ws, class_results):
    """Grace points granted per student, the remaining pool and the final result."""
    ws.title = "Decision Log"
    _write_header(ws, ["#", "Student Name", "Class", "Amount Granted", "Subjects", "Remaining", "Result"])

    for index, (student, outcome) in enumerate(class_results.decision_log(), 1):
        decisions = outcome.decisions
        subjects = ', '.join(f"{name} (+{points})" for name, points in decisions.subjects)
        _write_row(
            ws, index + 1,
            [
                index, student.full_name, class_results.class_obj.name,
                decisions.amount_granted, subjects, decisions.remaining_points,
                outcome.result.message,
            ]
        )


def build_class_workbook(class_results):
    """
    Build a workbook with results, statistics and decision log sheets.

    Args:
        class_results: services.ClassResults

    Returns:
        openpyxl.Workbook
    """
    wb = openpyxl.Workbook()
    build_results_sheet(wb.active, class_results)
    build_statistics_sheet(wb.create_sheet(), class_results.subject_reports())
    build_decision_log_sheet(wb.create_sheet(), class_results)
    return wb
