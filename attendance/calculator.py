"""Attendance arithmetic.

Pure functions with no I/O. Counts are assumed to be non-negative integers;
validation happens where the counts enter the system (forms and services).
"""
import enum
import math
from typing import Iterable, Tuple

THRESHOLD_PERCENT = 75.0
THRESHOLD_RATIO = THRESHOLD_PERCENT / 100.0


class AttendanceGrade(enum.Enum):
    EXCELLENT = ('Excellent', '#4CAF50')
    GOOD = ('Good', '#8BC34A')
    SATISFACTORY = ('Satisfactory', '#FFC107')
    NEEDS_IMPROVEMENT = ('Needs Improvement', '#FF9800')
    POOR = ('Poor', '#F44336')

    def __init__(self, display_name, color_hex):
        self.display_name = display_name
        self.color_hex = color_hex


# Lower bounds, evaluated highest first
GRADE_BANDS = (
    (90.0, AttendanceGrade.EXCELLENT),
    (80.0, AttendanceGrade.GOOD),
    (75.0, AttendanceGrade.SATISFACTORY),
    (60.0, AttendanceGrade.NEEDS_IMPROVEMENT),
)


def attendance_percentage(total: int, attended: int) -> float:
    if total == 0:
        return 0.0
    return attended / total * 100.0


def class_average(members: Iterable[Tuple[int, int]]) -> float:
    """Mean of each member's own percentage.

    ``members`` holds ``(total, attended)`` pairs. This is an average of
    percentages, so ``[(20, 20), (10, 0)]`` gives 50.0 even though the
    aggregate ratio 20/30 would be 66.7.
    """
    percentages = [attendance_percentage(total, attended) for total, attended in members]
    if not percentages:
        return 0.0
    return sum(percentages) / len(percentages)


def classes_needed_for_75_percent(attended: int, total: int) -> int:
    """Minimal consecutive classes to attend so (attended+x)/(total+x) >= 0.75."""
    if total == 0:
        return 0
    if attendance_percentage(total, attended) >= THRESHOLD_PERCENT:
        return 0
    required = (THRESHOLD_RATIO * total - attended) / (1 - THRESHOLD_RATIO)
    return max(0, math.ceil(required))


def classes_can_miss_for_75_percent(attended: int, total: int) -> int:
    """Maximal further classes missed while attended/(total+x) stays >= 0.75."""
    if total == 0 or attended == 0:
        return 0
    can_miss = attended / THRESHOLD_RATIO - total
    return max(0, math.floor(can_miss))


def attendance_grade(percent: float) -> AttendanceGrade:
    for lower_bound, grade in GRADE_BANDS:
        if percent >= lower_bound:
            return grade
    return AttendanceGrade.POOR


def is_at_risk_of_falling_75_percent(attended: int, total: int, upcoming_classes: int) -> bool:
    # Projection keeps attended flat while upcoming classes are added
    if total == 0:
        return False
    return attendance_percentage(total + upcoming_classes, attended) < THRESHOLD_PERCENT
