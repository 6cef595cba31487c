from datetime import date

import pytest

from attendance import services
from attendance.models import AttendanceStatus

DAY = date(2024, 1, 10)


@pytest.fixture
def roster(db):
    """Three active students, A1..A3, keyed by roll number."""
    students = {}
    for roll_no, name in (("A1", "Asha Nair"), ("A2", "Bala Murugan"), ("A3", "Chitra Devi")):
        result = services.add_student(name, roll_no)
        assert result.ok, result.error
        students[roll_no] = result.value
    return students


@pytest.fixture
def marked_day(roster):
    """A1 present, A2 absent without a leave form, A3 on duty on DAY."""
    services.mark_attendance(roster["A1"].pk, DAY, AttendanceStatus.PRESENT)
    services.mark_attendance(roster["A2"].pk, DAY, AttendanceStatus.ABSENT, leave_form_submitted=False)
    services.mark_attendance(roster["A3"].pk, DAY, AttendanceStatus.OD)
    return DAY
