"""Attendance aggregation and roster operations.

Queries are one-shot pulls against the ORM and never raise for "no data":
they return empty lists, zeroed summaries or ``None``. Mutations return a
``ServiceResult`` so validation and storage failures reach the caller as
values with a human-readable reason.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Q

from . import calculator, dates
from .calculator import AttendanceGrade
from .models import AttendanceRecord, AttendanceStatus, Student

logger = logging.getLogger(__name__)

VALIDATION = 'validation'
NOT_FOUND = 'not_found'
STORAGE = 'storage'

DUPLICATE_ROLL_NO = 'Roll number already exists'


@dataclass(frozen=True)
class ServiceResult:
    ok: bool
    value: Any = None
    error: str = ''
    kind: str = ''

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, kind: str = VALIDATION):
        return cls(ok=False, error=error, kind=kind)


@dataclass(frozen=True)
class StudentDay:
    student: Student
    record: Optional[AttendanceRecord]


@dataclass(frozen=True)
class StudentStatus:
    student_id: str
    roll_no: str
    name: str
    status: str
    leave_form_submitted: bool = False


@dataclass(frozen=True)
class AttendanceSummary:
    date: str
    total_students: int
    present_count: int
    absent_count: int
    od_count: int
    class_average: float


@dataclass(frozen=True)
class AttendanceReport:
    date: str
    summary: AttendanceSummary
    absentees: List[StudentStatus]
    od_students: List[StudentStatus]


@dataclass(frozen=True)
class StudentAttendanceStats:
    student_id: str
    roll_no: str
    name: str
    total_classes: int
    attended_classes: int
    attendance_percentage: float
    classes_needed_for_75: int
    classes_can_miss: int
    grade: AttendanceGrade
    at_risk: bool


@dataclass(frozen=True)
class ClassAnalytics:
    class_average: float
    total_students: int
    students_above_75: int
    students_below_75: int
    students_at_risk: int
    grade_distribution: Dict[AttendanceGrade, int]
    needing_attention: List[StudentAttendanceStats]
    top_performers: List[StudentAttendanceStats]


@dataclass(frozen=True)
class MarkEntry:
    student_id: Any
    date: Any
    status: str
    leave_form_submitted: bool = False


@dataclass(frozen=True)
class BulkMarkError:
    student_id: str
    error: str


@dataclass(frozen=True)
class BulkMarkResult:
    saved: List[AttendanceRecord] = field(default_factory=list)
    errors: List[BulkMarkError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class RosterImportResult:
    added: List[Student] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)
    deactivated: int = 0


def _as_date(value) -> date:
    d = dates.parse_storage_date(value)
    if d is None:
        raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    return d


def _find_student(student_id, active_only=False) -> Optional[Student]:
    qs = Student.objects.all()
    if active_only:
        qs = qs.filter(is_active=True)
    try:
        return qs.filter(pk=student_id).first()
    except (ValidationError, ValueError):
        # Malformed UUIDs behave like a lookup miss
        return None


def _risk_lookahead() -> int:
    return getattr(settings, 'DAILYTRACK_RISK_LOOKAHEAD', 5)


# ---------------------------------------------------------------------------
# Roster reads
# ---------------------------------------------------------------------------

def active_students() -> List[Student]:
    return list(Student.objects.filter(is_active=True).order_by('roll_no'))


def search_students(query: str) -> List[Student]:
    query = (query or '').strip()
    if not query:
        return active_students()
    return list(Student.objects.filter(is_active=True, name__icontains=query).order_by('roll_no'))


def get_student(student_id) -> Optional[Student]:
    return _find_student(student_id)


def get_student_by_roll_no(roll_no: str) -> Optional[Student]:
    return Student.objects.filter(roll_no=(roll_no or '').strip(), is_active=True).first()


def active_student_count() -> int:
    return Student.objects.filter(is_active=True).count()


def is_roll_no_available(roll_no: str, exclude_student_id=None) -> bool:
    existing = get_student_by_roll_no(roll_no)
    return existing is None or str(existing.pk) == str(exclude_student_id)


# ---------------------------------------------------------------------------
# Attendance reads
# ---------------------------------------------------------------------------

def students_for_date(day) -> List[StudentDay]:
    """Every active student paired with its record for ``day`` (or None)."""
    d = _as_date(day)
    students = active_students()
    records = AttendanceRecord.objects.filter(date=d, student__in=students)
    by_student = {r.student_id: r for r in records}
    return [StudentDay(student=s, record=by_student.get(s.pk)) for s in students]


def student_history(student_id) -> List[AttendanceRecord]:
    student = _find_student(student_id)
    if student is None:
        return []
    return list(AttendanceRecord.objects.filter(student=student).order_by('-date'))


def summary_for_date(day) -> AttendanceSummary:
    d = _as_date(day)
    total = active_student_count()
    counts = AttendanceRecord.objects.filter(date=d, student__is_active=True).aggregate(
        present=Count('id', filter=Q(status=AttendanceStatus.PRESENT)),
        absent=Count('id', filter=Q(status=AttendanceStatus.ABSENT)),
        od=Count('id', filter=Q(status=AttendanceStatus.OD)),
    )
    present = counts['present'] or 0
    return AttendanceSummary(
        date=dates.to_storage(d),
        total_students=total,
        present_count=present,
        absent_count=counts['absent'] or 0,
        od_count=counts['od'] or 0,
        class_average=calculator.attendance_percentage(total, present),
    )


def _build_stats(student_id, roll_no, name, total, attended, lookahead) -> StudentAttendanceStats:
    pct = calculator.attendance_percentage(total, attended)
    return StudentAttendanceStats(
        student_id=str(student_id),
        roll_no=roll_no,
        name=name,
        total_classes=total,
        attended_classes=attended,
        attendance_percentage=pct,
        classes_needed_for_75=calculator.classes_needed_for_75_percent(attended, total),
        classes_can_miss=calculator.classes_can_miss_for_75_percent(attended, total),
        grade=calculator.attendance_grade(pct),
        at_risk=calculator.is_at_risk_of_falling_75_percent(attended, total, lookahead),
    )


def _with_counts(qs):
    return qs.annotate(
        total_classes=Count('attendance_records'),
        attended_classes=Count(
            'attendance_records',
            filter=Q(attendance_records__status=AttendanceStatus.PRESENT),
        ),
    )


def all_students_stats() -> List[StudentAttendanceStats]:
    """Lifetime statistics for every active student, by roll number."""
    lookahead = _risk_lookahead()
    rows = _with_counts(Student.objects.filter(is_active=True)).order_by('roll_no')
    return [
        _build_stats(s.pk, s.roll_no, s.name, s.total_classes, s.attended_classes, lookahead)
        for s in rows
    ]


def student_stats(student_id) -> Optional[StudentAttendanceStats]:
    student = _find_student(student_id)
    if student is None:
        return None
    row = _with_counts(Student.objects.filter(pk=student.pk)).get()
    return _build_stats(row.pk, row.roll_no, row.name, row.total_classes, row.attended_classes, _risk_lookahead())


def report_for_date(day) -> AttendanceReport:
    d = _as_date(day)
    summary = summary_for_date(d)
    students = {s.pk: s for s in active_students()}

    absentees = []
    od_students = []
    for record in AttendanceRecord.objects.filter(date=d):
        if record.status == AttendanceStatus.PRESENT:
            continue
        student = students.get(record.student_id)
        if student is None:
            logger.warning("Skipping record %s on %s: student %s is inactive or missing",
                           record.pk, d, record.student_id)
            continue
        entry = StudentStatus(
            student_id=str(student.pk),
            roll_no=student.roll_no,
            name=student.name,
            status=record.status,
            leave_form_submitted=record.leave_form_submitted,
        )
        if record.status == AttendanceStatus.ABSENT:
            absentees.append(entry)
        elif record.status == AttendanceStatus.OD:
            od_students.append(entry)

    return AttendanceReport(
        date=dates.to_storage(d),
        summary=summary,
        absentees=sorted(absentees, key=lambda s: s.roll_no),
        od_students=sorted(od_students, key=lambda s: s.roll_no),
    )


def class_analytics(stats: Optional[Iterable[StudentAttendanceStats]] = None) -> ClassAnalytics:
    stats = list(all_students_stats() if stats is None else stats)
    threshold = calculator.THRESHOLD_PERCENT
    grade_distribution = {}
    for row in stats:
        grade_distribution[row.grade] = grade_distribution.get(row.grade, 0) + 1
    needing_attention = sorted(
        (s for s in stats if s.attendance_percentage < threshold),
        key=lambda s: s.attendance_percentage,
    )
    top_performers = sorted(
        (s for s in stats if s.attendance_percentage >= 90.0),
        key=lambda s: s.attendance_percentage,
        reverse=True,
    )[:10]
    return ClassAnalytics(
        class_average=calculator.class_average((s.total_classes, s.attended_classes) for s in stats),
        total_students=len(stats),
        students_above_75=sum(1 for s in stats if s.attendance_percentage >= threshold),
        students_below_75=sum(1 for s in stats if s.attendance_percentage < threshold),
        students_at_risk=sum(1 for s in stats if threshold <= s.attendance_percentage < 80.0),
        grade_distribution=grade_distribution,
        needing_attention=needing_attention,
        top_performers=top_performers,
    )


def students_by_grade(grade: AttendanceGrade,
                      stats: Optional[Iterable[StudentAttendanceStats]] = None) -> List[StudentAttendanceStats]:
    """Statistics rows in ``grade``, lowest percentage first."""
    rows = all_students_stats() if stats is None else stats
    return sorted((s for s in rows if s.grade is grade), key=lambda s: (s.attendance_percentage, s.roll_no))


def recent_attendance_dates(limit: int = 30) -> List[str]:
    qs = AttendanceRecord.objects.order_by('-date').values_list('date', flat=True).distinct()
    return [dates.to_storage(d) for d in qs[:limit]]


# ---------------------------------------------------------------------------
# Attendance mutations
# ---------------------------------------------------------------------------

def mark_attendance(student_id, day, status, leave_form_submitted=False) -> ServiceResult:
    """Upsert the record for (student, day).

    An existing record keeps its id and gets a fresh ``updated_at``. The
    leave form flag is only kept for Absent marks.
    """
    d = dates.parse_storage_date(day)
    if d is None:
        return ServiceResult.failure(f"Invalid date {day!r}; expected YYYY-MM-DD")
    try:
        status = AttendanceStatus(status)
    except ValueError:
        return ServiceResult.failure(f"Unknown attendance status {status!r}")
    if status != AttendanceStatus.ABSENT:
        leave_form_submitted = False

    student = _find_student(student_id, active_only=True)
    if student is None:
        return ServiceResult.failure('Student not found', NOT_FOUND)
    try:
        with transaction.atomic():
            record, created = AttendanceRecord.objects.update_or_create(
                student=student,
                date=d,
                defaults={'status': status, 'leave_form_submitted': bool(leave_form_submitted)},
            )
    except DatabaseError as exc:
        logger.exception("Failed to mark %s for %s on %s", status, student.roll_no, d)
        return ServiceResult.failure(f"Failed to mark attendance: {exc}", STORAGE)
    logger.debug("%s attendance %s for %s on %s", 'Created' if created else 'Updated', status, student.roll_no, d)
    return ServiceResult.success(record)


def mark_bulk_attendance(entries: Iterable[MarkEntry]) -> BulkMarkResult:
    """Apply ``mark_attendance`` per entry, each row atomic on its own."""
    saved = []
    errors = []
    for entry in entries:
        result = mark_attendance(entry.student_id, entry.date, entry.status, entry.leave_form_submitted)
        if result.ok:
            saved.append(result.value)
        else:
            errors.append(BulkMarkError(student_id=str(entry.student_id), error=result.error))
    if errors:
        logger.warning("Bulk attendance: %d saved, %d failed", len(saved), len(errors))
    return BulkMarkResult(saved=saved, errors=errors)


def mark_all_present(day) -> BulkMarkResult:
    d = dates.parse_storage_date(day)
    if d is None:
        error = BulkMarkError(student_id='', error=f"Invalid date {day!r}; expected YYYY-MM-DD")
        return BulkMarkResult(errors=[error])
    return mark_bulk_attendance(
        MarkEntry(student_id=s.pk, date=d, status=AttendanceStatus.PRESENT)
        for s in active_students()
    )


def delete_attendance_for_date(day) -> ServiceResult:
    """Administrative purge of every record on ``day``; value is the count."""
    d = dates.parse_storage_date(day)
    if d is None:
        return ServiceResult.failure(f"Invalid date {day!r}; expected YYYY-MM-DD")
    try:
        deleted, _ = AttendanceRecord.objects.filter(date=d).delete()
    except DatabaseError as exc:
        logger.exception("Failed to delete attendance for %s", d)
        return ServiceResult.failure(f"Failed to delete attendance: {exc}", STORAGE)
    logger.info("Deleted %d attendance record(s) for %s", deleted, d)
    return ServiceResult.success(deleted)


# ---------------------------------------------------------------------------
# Roster mutations
# ---------------------------------------------------------------------------

def _clean_student_fields(name, roll_no):
    name = (name or '').strip()
    roll_no = (roll_no or '').strip()
    if not name:
        return None, None, 'Student name cannot be empty'
    if not roll_no:
        return None, None, 'Roll number cannot be empty'
    return name, roll_no, ''


def add_student(name: str, roll_no: str) -> ServiceResult:
    name, roll_no, error = _clean_student_fields(name, roll_no)
    if error:
        return ServiceResult.failure(error)
    if not is_roll_no_available(roll_no):
        return ServiceResult.failure(DUPLICATE_ROLL_NO)
    try:
        with transaction.atomic():
            student = Student.objects.create(name=name, roll_no=roll_no)
    except IntegrityError:
        # Lost a race against a concurrent insert of the same roll number
        return ServiceResult.failure(DUPLICATE_ROLL_NO)
    except DatabaseError as exc:
        logger.exception("Failed to add student %s", roll_no)
        return ServiceResult.failure(f"Failed to add student: {exc}", STORAGE)
    logger.info("Added student %s", student)
    return ServiceResult.success(student)


def update_student(student_id, name: str, roll_no: str) -> ServiceResult:
    student = _find_student(student_id)
    if student is None:
        return ServiceResult.failure('Student not found', NOT_FOUND)
    name, roll_no, error = _clean_student_fields(name, roll_no)
    if error:
        return ServiceResult.failure(error)
    if student.is_active and not is_roll_no_available(roll_no, exclude_student_id=student.pk):
        return ServiceResult.failure(DUPLICATE_ROLL_NO)
    student.name = name
    student.roll_no = roll_no
    try:
        with transaction.atomic():
            student.save(update_fields=['name', 'roll_no'])
    except IntegrityError:
        return ServiceResult.failure(DUPLICATE_ROLL_NO)
    except DatabaseError as exc:
        logger.exception("Failed to update student %s", student_id)
        return ServiceResult.failure(f"Failed to update student: {exc}", STORAGE)
    return ServiceResult.success(student)


def deactivate_student(student_id) -> ServiceResult:
    """Soft delete: the row and its attendance history stay queryable."""
    student = _find_student(student_id)
    if student is None:
        return ServiceResult.failure('Student not found', NOT_FOUND)
    student.is_active = False
    try:
        student.save(update_fields=['is_active'])
    except DatabaseError as exc:
        logger.exception("Failed to deactivate student %s", student_id)
        return ServiceResult.failure(f"Failed to delete student: {exc}", STORAGE)
    logger.info("Deactivated student %s", student)
    return ServiceResult.success(student)


def add_students(rows: Iterable[Tuple[str, str]]) -> RosterImportResult:
    """Add ``(roll_no, name)`` rows, collecting per-row failures."""
    added = []
    errors = []
    for roll_no, name in rows:
        result = add_student(name, roll_no)
        if result.ok:
            added.append(result.value)
        else:
            errors.append((roll_no, result.error))
    return RosterImportResult(added=added, errors=errors)


def replace_all_students(rows: Iterable[Tuple[str, str]]) -> ServiceResult:
    """Deactivate the current roster, then add ``rows`` as the new one."""
    rows = list(rows)
    try:
        deactivated = Student.objects.filter(is_active=True).update(is_active=False)
    except DatabaseError as exc:
        logger.exception("Failed to deactivate current roster")
        return ServiceResult.failure(f"Failed to replace students: {exc}", STORAGE)
    imported = add_students(rows)
    logger.info("Replaced roster: %d deactivated, %d added, %d failed",
                deactivated, len(imported.added), len(imported.errors))
    return ServiceResult.success(
        RosterImportResult(added=imported.added, errors=imported.errors, deactivated=deactivated)
    )
