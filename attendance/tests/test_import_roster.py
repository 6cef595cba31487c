from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from attendance import services
from attendance.management.commands.import_roster import read_roster

pytestmark = pytest.mark.django_db


def _write(tmp_path, body):
    path = tmp_path / "roster.csv"
    path.write_text(body, encoding="utf-8")
    return path


def test_read_roster_skips_header_and_blank_lines(tmp_path):
    path = _write(tmp_path, "roll_no,name\nA1, Asha\n\nA2,Bala\n")
    assert read_roster(path) == [("A1", "Asha"), ("A2", "Bala")]


def test_read_roster_rejects_short_rows(tmp_path):
    path = _write(tmp_path, "A1,Asha\nA2\n")
    with pytest.raises(CommandError, match="Line 2"):
        read_roster(path)


def test_import_adds_students(tmp_path):
    path = _write(tmp_path, "A1,Asha\nA2,Bala\nA2,Again\n")
    out = StringIO()
    call_command("import_roster", str(path), stdout=out)
    out = out.getvalue()
    assert "Imported 2 student(s)" in out
    assert "Skipped A2" in out
    assert [s.roll_no for s in services.active_students()] == ["A1", "A2"]


def test_import_replace_deactivates_current_roster(tmp_path, roster):
    path = _write(tmp_path, "roll_no,name\nB1,Farah\n")
    out = StringIO()
    call_command("import_roster", str(path), "--replace", stdout=out)
    out = out.getvalue()
    assert "Deactivated 3 student(s)" in out
    assert [s.roll_no for s in services.active_students()] == ["B1"]


def test_import_missing_file(tmp_path):
    with pytest.raises(CommandError, match="does not exist"):
        call_command("import_roster", str(tmp_path / "nope.csv"))
