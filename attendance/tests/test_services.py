import logging
from datetime import date, datetime, timedelta, timezone as dt_timezone

import pytest
from django.db import DatabaseError
from django.utils import timezone

from attendance import services
from attendance.calculator import AttendanceGrade
from attendance.models import AttendanceRecord, AttendanceStatus, Student

from .conftest import DAY

pytestmark = pytest.mark.django_db


def test_students_for_date_pairs_every_active_student(roster):
    services.mark_attendance(roster["A2"].pk, DAY, AttendanceStatus.ABSENT)
    rows = services.students_for_date(DAY)
    assert [r.student.roll_no for r in rows] == ["A1", "A2", "A3"]
    assert rows[0].record is None
    assert rows[1].record.status == AttendanceStatus.ABSENT


def test_students_for_date_rejects_bad_dates(roster):
    with pytest.raises(ValueError):
        services.students_for_date("2024-02-30")


def test_mark_attendance_upserts_one_record(roster, monkeypatch):
    first = datetime(2024, 1, 10, 9, 0, tzinfo=dt_timezone.utc)
    second = first + timedelta(minutes=30)
    student = roster["A1"]

    monkeypatch.setattr(timezone, "now", lambda: first)
    created = services.mark_attendance(student.pk, DAY, AttendanceStatus.ABSENT, True)
    assert created.ok

    monkeypatch.setattr(timezone, "now", lambda: second)
    updated = services.mark_attendance(student.pk, "2024-01-10", AttendanceStatus.PRESENT)
    assert updated.ok

    records = AttendanceRecord.objects.filter(student=student, date=DAY)
    assert records.count() == 1
    record = records.get()
    assert record.pk == created.value.pk
    assert record.status == AttendanceStatus.PRESENT
    assert record.created_at == first
    assert record.updated_at == second


def test_leave_form_flag_only_kept_for_absences(roster):
    absent = services.mark_attendance(roster["A1"].pk, DAY, AttendanceStatus.ABSENT, True)
    assert absent.value.leave_form_submitted is True
    od = services.mark_attendance(roster["A1"].pk, DAY, AttendanceStatus.OD, True)
    assert od.value.leave_form_submitted is False
    assert AttendanceRecord.objects.get(student=roster["A1"], date=DAY).leave_form_submitted is False


@pytest.mark.parametrize("student_key, day, status, kind", [
    (None, DAY, AttendanceStatus.PRESENT, services.NOT_FOUND),
    ("not-a-uuid", DAY, AttendanceStatus.PRESENT, services.NOT_FOUND),
    ("A1", "10-01-2024", AttendanceStatus.PRESENT, services.VALIDATION),
    ("A1", DAY, "Late", services.VALIDATION),
])
def test_mark_attendance_failures(roster, student_key, day, status, kind):
    if student_key is None:
        student_id = "00000000-0000-0000-0000-000000000000"
    else:
        student_id = roster[student_key].pk if student_key in roster else student_key
    result = services.mark_attendance(student_id, day, status)
    assert not result.ok
    assert result.kind == kind
    assert result.error
    assert AttendanceRecord.objects.count() == 0


def test_mark_attendance_refuses_inactive_students(roster):
    services.deactivate_student(roster["A3"].pk)
    result = services.mark_attendance(roster["A3"].pk, DAY, AttendanceStatus.PRESENT)
    assert result.kind == services.NOT_FOUND


def test_storage_failure_is_reported_not_raised(roster, monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise DatabaseError("disk I/O error")

    monkeypatch.setattr(AttendanceRecord.objects, "update_or_create", boom)
    with caplog.at_level(logging.ERROR, logger="attendance.services"):
        result = services.mark_attendance(roster["A1"].pk, DAY, AttendanceStatus.PRESENT)
    assert not result.ok
    assert result.kind == services.STORAGE
    assert "disk I/O error" in result.error
    assert "Failed to mark" in caplog.text


def test_summary_without_data_is_zeroed(db):
    summary = services.summary_for_date(DAY)
    assert summary.date == "2024-01-10"
    assert (summary.total_students, summary.present_count, summary.absent_count, summary.od_count) == (0, 0, 0, 0)
    assert summary.class_average == 0.0


def test_summary_counts_statuses(marked_day):
    summary = services.summary_for_date(marked_day)
    assert summary.total_students == 3
    assert summary.present_count == 1
    assert summary.absent_count == 1
    assert summary.od_count == 1
    assert round(summary.class_average, 2) == 33.33


def test_history_is_newest_first(roster):
    student = roster["A1"]
    for offset in (2, 0, 1):
        services.mark_attendance(student.pk, DAY - timedelta(days=offset), AttendanceStatus.PRESENT)
    history = services.student_history(student.pk)
    assert [r.date for r in history] == [DAY, DAY - timedelta(days=1), DAY - timedelta(days=2)]
    assert services.student_history("00000000-0000-0000-0000-000000000000") == []


def test_stats_count_only_present_as_attended(roster):
    a1 = roster["A1"]
    for offset, status in enumerate([AttendanceStatus.PRESENT] * 3 + [AttendanceStatus.OD]):
        services.mark_attendance(a1.pk, DAY - timedelta(days=offset), status)

    stats = {s.roll_no: s for s in services.all_students_stats()}
    assert stats["A1"].total_classes == 4
    assert stats["A1"].attended_classes == 3
    assert stats["A1"].attendance_percentage == 75.0
    assert stats["A1"].grade is AttendanceGrade.SATISFACTORY
    assert stats["A1"].classes_can_miss == 0
    # Students with no marks are still listed
    assert stats["A2"].total_classes == 0
    assert stats["A2"].attendance_percentage == 0.0
    assert stats["A2"].grade is AttendanceGrade.POOR


def test_student_stats_single(roster):
    services.mark_attendance(roster["A2"].pk, DAY, AttendanceStatus.ABSENT)
    stats = services.student_stats(roster["A2"].pk)
    assert stats.roll_no == "A2"
    assert stats.total_classes == 1
    assert stats.classes_needed_for_75 == 3
    assert services.student_stats("00000000-0000-0000-0000-000000000000") is None


def test_class_analytics(roster):
    for offset in range(10):
        day = DAY - timedelta(days=offset)
        services.mark_attendance(roster["A1"].pk, day, AttendanceStatus.PRESENT)
        services.mark_attendance(
            roster["A2"].pk, day,
            AttendanceStatus.ABSENT if offset < 5 else AttendanceStatus.PRESENT,
        )
        services.mark_attendance(
            roster["A3"].pk, day,
            AttendanceStatus.ABSENT if offset < 2 else AttendanceStatus.PRESENT,
        )

    result = services.class_analytics()
    assert result.total_students == 3
    # mean of 100, 50 and 80
    assert result.class_average == pytest.approx(76.6667, abs=1e-3)
    assert result.students_above_75 == 2
    assert result.students_below_75 == 1
    assert result.students_at_risk == 0
    assert result.grade_distribution == {
        AttendanceGrade.EXCELLENT: 1,
        AttendanceGrade.GOOD: 1,
        AttendanceGrade.POOR: 1,
    }
    assert [s.roll_no for s in result.needing_attention] == ["A2"]
    assert [s.roll_no for s in result.top_performers] == ["A1"]


def test_students_by_grade(roster):
    for offset in range(4):
        day = DAY - timedelta(days=offset)
        services.mark_attendance(roster["A1"].pk, day, AttendanceStatus.PRESENT)
        services.mark_attendance(
            roster["A2"].pk, day,
            AttendanceStatus.PRESENT if offset == 0 else AttendanceStatus.ABSENT,
        )

    poor = services.students_by_grade(AttendanceGrade.POOR)
    # A3 has no marks (0%) and sorts ahead of A2 (25%)
    assert [s.roll_no for s in poor] == ["A3", "A2"]
    assert [s.roll_no for s in services.students_by_grade(AttendanceGrade.EXCELLENT)] == ["A1"]
    assert services.students_by_grade(AttendanceGrade.GOOD) == []

    stats = services.all_students_stats()
    assert services.students_by_grade(AttendanceGrade.EXCELLENT, stats)[0].roll_no == "A1"


def test_class_analytics_of_empty_roster(db):
    result = services.class_analytics()
    assert result.total_students == 0
    assert result.class_average == 0.0
    assert result.grade_distribution == {}


def test_recent_attendance_dates_are_distinct(roster):
    services.mark_all_present(DAY)
    services.mark_all_present(DAY - timedelta(days=3))
    assert services.recent_attendance_dates() == ["2024-01-10", "2024-01-07"]
    assert services.recent_attendance_dates(limit=1) == ["2024-01-10"]


def test_mark_all_present(roster):
    result = services.mark_all_present(DAY)
    assert result.ok
    assert len(result.saved) == 3
    assert services.summary_for_date(DAY).present_count == 3


def test_mark_all_present_rejects_bad_date(roster):
    result = services.mark_all_present("2024-13-45")
    assert not result.ok
    assert result.saved == []
    assert len(result.errors) == 1
    assert "Invalid date" in result.errors[0].error
    assert AttendanceRecord.objects.count() == 0


def test_bulk_marking_reports_partial_failure(roster):
    entries = [
        services.MarkEntry(roster["A1"].pk, DAY, AttendanceStatus.PRESENT),
        services.MarkEntry("00000000-0000-0000-0000-000000000000", DAY, AttendanceStatus.PRESENT),
        services.MarkEntry(roster["A3"].pk, DAY, "Sleeping"),
        services.MarkEntry(roster["A2"].pk, DAY, AttendanceStatus.ABSENT, True),
    ]
    result = services.mark_bulk_attendance(entries)
    assert not result.ok
    assert len(result.saved) == 2
    assert [e.student_id for e in result.errors] == [
        "00000000-0000-0000-0000-000000000000", str(roster["A3"].pk),
    ]
    # Rows that succeeded stay committed
    assert AttendanceRecord.objects.filter(date=DAY).count() == 2


def test_delete_attendance_for_date(marked_day, roster):
    services.mark_attendance(roster["A1"].pk, DAY - timedelta(days=1), AttendanceStatus.PRESENT)
    result = services.delete_attendance_for_date(marked_day)
    assert result.ok
    assert result.value == 3
    assert AttendanceRecord.objects.filter(date=marked_day).count() == 0
    assert AttendanceRecord.objects.count() == 1


def test_delete_attendance_for_bad_date(db):
    result = services.delete_attendance_for_date("yesterday")
    assert result.kind == services.VALIDATION


def test_add_student_trims_and_validates(db):
    result = services.add_student("  Devi  ", " B7 ")
    assert result.ok
    assert (result.value.name, result.value.roll_no) == ("Devi", "B7")
    assert services.add_student("   ", "B8").error == "Student name cannot be empty"
    assert services.add_student("Ezhil", "").error == "Roll number cannot be empty"


def test_duplicate_roll_number_leaves_existing_student(roster):
    result = services.add_student("Someone Else", "A1")
    assert not result.ok
    assert result.error == services.DUPLICATE_ROLL_NO
    assert Student.objects.filter(roll_no="A1").count() == 1
    assert Student.objects.get(roll_no="A1").name == "Asha Nair"


def test_roll_number_reusable_after_deactivation(roster):
    services.deactivate_student(roster["A1"].pk)
    result = services.add_student("New Asha", "A1")
    assert result.ok
    assert services.get_student_by_roll_no("A1").name == "New Asha"
    assert Student.objects.filter(roll_no="A1").count() == 2


def test_update_student(roster):
    same_roll = services.update_student(roster["A1"].pk, "Asha N.", "A1")
    assert same_roll.ok
    assert Student.objects.get(pk=roster["A1"].pk).name == "Asha N."

    clash = services.update_student(roster["A1"].pk, "Asha N.", "A2")
    assert clash.error == services.DUPLICATE_ROLL_NO
    assert Student.objects.get(pk=roster["A1"].pk).roll_no == "A1"

    missing = services.update_student("00000000-0000-0000-0000-000000000000", "X", "X1")
    assert missing.kind == services.NOT_FOUND


def test_deactivation_keeps_history(marked_day, roster):
    result = services.deactivate_student(roster["A2"].pk)
    assert result.ok
    assert [s.roll_no for s in services.active_students()] == ["A1", "A3"]
    assert services.active_student_count() == 2
    assert len(services.student_history(roster["A2"].pk)) == 1
    assert services.summary_for_date(marked_day).absent_count == 0


def test_report_skips_deactivated_students(marked_day, roster, caplog):
    services.deactivate_student(roster["A2"].pk)
    with caplog.at_level(logging.WARNING, logger="attendance.services"):
        report = services.report_for_date(marked_day)
    assert report.absentees == []
    assert [s.roll_no for s in report.od_students] == ["A3"]
    assert "inactive or missing" in caplog.text


def test_search_students(roster):
    assert [s.roll_no for s in services.search_students("murugan")] == ["A2"]
    assert len(services.search_students("  ")) == 3
    assert services.is_roll_no_available("Z9")
    assert not services.is_roll_no_available("A1")
    assert services.is_roll_no_available("A1", exclude_student_id=roster["A1"].pk)


def test_replace_all_students(marked_day, roster):
    result = services.replace_all_students([("B1", "Farah"), ("B2", "Gopal"), ("B2", "Duplicate")])
    assert result.ok
    imported = result.value
    assert imported.deactivated == 3
    assert [s.roll_no for s in imported.added] == ["B1", "B2"]
    assert imported.errors == [("B2", services.DUPLICATE_ROLL_NO)]
    assert [s.roll_no for s in services.active_students()] == ["B1", "B2"]
    # Old attendance survives the roster swap
    assert AttendanceRecord.objects.filter(date=marked_day).count() == 3
