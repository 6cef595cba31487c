import uuid

from django.db import models


class AttendanceStatus(models.TextChoices):
    PRESENT = "PRESENT", "Present"
    ABSENT = "ABSENT", "Absent"
    OD = "OD", "On Duty"


class Student(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    roll_no = models.CharField(max_length=32, help_text="Unique among active students, e.g. CSE071")
    name = models.CharField(max_length=150)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["roll_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["roll_no"],
                condition=models.Q(is_active=True),
                name="uniq_active_student_roll_no",
            ),
        ]
        indexes = [
            models.Index(fields=["is_active", "roll_no"], name="idx_student_active_roll"),
        ]

    def __str__(self):
        return f"{self.roll_no} - {self.name}"


class AttendanceRecord(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Soft-deleted students keep their history, so records never cascade away
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name="attendance_records")
    date = models.DateField()
    status = models.CharField(max_length=8, choices=AttendanceStatus.choices)
    leave_form_submitted = models.BooleanField(default=False, help_text="Only meaningful for Absent")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "student__roll_no"]
        constraints = [
            models.UniqueConstraint(fields=["student", "date"], name="uniq_record_student_date"),
        ]
        indexes = [
            models.Index(fields=["date"], name="idx_record_date"),
        ]

    def __str__(self):
        return f"{self.student} - {self.date}: {self.get_status_display()}"
