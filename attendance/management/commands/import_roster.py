import csv
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from attendance import services


def read_roster(path, encoding='utf-8'):
    """``(roll_no, name)`` rows from a CSV; a ``roll_no,name`` header is optional."""
    rows = []
    with open(path, newline='', encoding=encoding) as fh:
        for line_no, row in enumerate(csv.reader(fh), 1):
            if not row or not any(cell.strip() for cell in row):
                continue
            if line_no == 1 and row[0].strip().lower() in ('roll_no', 'roll no', 'rollno'):
                continue
            if len(row) < 2:
                raise CommandError(f"Line {line_no}: expected 'roll_no,name', got {row!r}")
            rows.append((row[0].strip(), row[1].strip()))
    return rows


class Command(BaseCommand):
    help = "Import the class roster from a CSV of roll_no,name rows"

    def add_arguments(self, parser):
        parser.add_argument('csv_path', help='CSV file with roll_no,name rows')
        parser.add_argument('--replace', action='store_true',
                            help='Deactivate every active student before importing')
        parser.add_argument('--encoding', default='utf-8', help='CSV file encoding')

    def handle(self, *args, **options):
        path = Path(options['csv_path'])
        if not path.exists():
            raise CommandError(f"Roster file {path} does not exist")
        rows = read_roster(path, encoding=options['encoding'])
        if not rows:
            raise CommandError(f"Roster file {path} has no rows")

        if options['replace']:
            result = services.replace_all_students(rows)
            if not result.ok:
                raise CommandError(result.error)
            imported = result.value
            self.stdout.write(self.style.WARNING(f"Deactivated {imported.deactivated} student(s)"))
        else:
            imported = services.add_students(rows)

        for roll_no, error in imported.errors:
            self.stdout.write(self.style.WARNING(f"Skipped {roll_no or '<blank>'}: {error}"))
        self.stdout.write(self.style.SUCCESS(f"Imported {len(imported.added)} student(s)"))
