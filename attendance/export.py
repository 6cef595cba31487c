import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill

HEADERS = [
    'Roll No', 'Name', 'Total Classes', 'Attended', 'Attendance %',
    'Grade', 'Classes Needed (75%)', 'Can Miss', 'At Risk',
]


def build_stats_workbook(stats, title='Attendance'):
    """Workbook with one row per ``StudentAttendanceStats``, grade cells shaded."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title[:31]

    for c, h in enumerate(HEADERS, 1):
        cell = ws.cell(row=1, column=c, value=h)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal='center')

    row = 2
    for s in stats:
        ws.cell(row=row, column=1, value=s.roll_no)
        ws.cell(row=row, column=2, value=s.name)
        ws.cell(row=row, column=3, value=s.total_classes)
        ws.cell(row=row, column=4, value=s.attended_classes)
        ws.cell(row=row, column=5, value=round(s.attendance_percentage, 2))
        grade_cell = ws.cell(row=row, column=6, value=s.grade.display_name)
        color = s.grade.color_hex.lstrip('#')
        grade_cell.fill = PatternFill(start_color=color, end_color=color, fill_type='solid')
        ws.cell(row=row, column=7, value=s.classes_needed_for_75)
        ws.cell(row=row, column=8, value=s.classes_can_miss)
        ws.cell(row=row, column=9, value='Yes' if s.at_risk else 'No')
        row += 1

    # Auto width (simple heuristic)
    for column_cells in ws.columns:
        length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = max(10, min(30, length + 2))
    ws.freeze_panes = 'A2'
    return wb
