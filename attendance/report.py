"""Plain-text attendance digests for sharing (WhatsApp, e-mail, ...)."""
from typing import List

from . import dates

DEFAULT_FOOTER = 'Generated by Daily Track App'

# Present-today remark bands, distinct from the five attendance grades
REMARKS = (
    (90.0, '🎉 Excellent attendance today!'),
    (80.0, '👍 Good attendance today!'),
    (70.0, '⚠️ Average attendance today'),
)
LOW_REMARK = '🚨 Low attendance today - needs attention'


def present_remark(present_percentage: float) -> str:
    for lower_bound, remark in REMARKS:
        if present_percentage >= lower_bound:
            return remark
    return LOW_REMARK


def format_attendance_report(report, footer: str = DEFAULT_FOOTER) -> str:
    """Render an ``AttendanceReport`` as the daily share message."""
    summary = report.summary
    lines = [
        '📋 Daily Attendance Report',
        f"📅 Date: {dates.format_for_display(report.date)}",
        f"📅 Day: {dates.day_of_week(report.date)}",
        '',
    ]

    if report.absentees:
        lines.append(f"❌ Absentees ({len(report.absentees)}):")
        lines.append('')
        lines.append('Roll numbers: ' + ', '.join(s.roll_no for s in report.absentees))
        lines.append('')

    if report.od_students:
        lines.append(f"📝 On Duty - OD ({len(report.od_students)}):")
        for s in report.od_students:
            lines.append(f"• {s.roll_no} - {s.name}")
        lines.append('')

    lines.extend([
        '📊 Summary:',
        f"👥 Total Students: {summary.total_students}",
        f"✅ Present: {summary.present_count}",
        f"❌ Absent: {summary.absent_count}",
        f"📝 On Duty: {summary.od_count}",
        f"📈 Class Average: {summary.class_average:.2f}%",
    ])

    if summary.total_students > 0:
        present_pct = summary.present_count / summary.total_students * 100
        lines.append(f"📊 Present Today: {present_pct:.1f}%")
        lines.append(present_remark(present_pct))

    lines.append('')
    lines.append(footer)
    return '\n'.join(lines) + '\n'


def format_quick_summary(date, present_count: int, total_students: int) -> str:
    percentage = (present_count / total_students * 100) if total_students > 0 else 0.0
    return '\n'.join([
        '📊 Quick Attendance Summary',
        f"📅 {dates.format_for_display(date)}",
        f"✅ Present: {present_count}/{total_students}",
        f"📈 Percentage: {percentage:.1f}%",
    ]) + '\n'


def format_absentee_message(date, absentees: List) -> str:
    lines = [
        '❌ Absentees Report',
        f"📅 Date: {dates.format_for_display(date)}",
        '',
    ]
    if not absentees:
        lines.append('🎉 No absentees today! Perfect attendance!')
    else:
        lines.append(f"Total Absentees: {len(absentees)}")
        lines.append('')
        for s in absentees:
            suffix = ' (leave form submitted)' if getattr(s, 'leave_form_submitted', False) else ''
            lines.append(f"• {s.roll_no} - {s.name}{suffix}")
    return '\n'.join(lines) + '\n'
