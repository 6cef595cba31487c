from django import forms

from .dates import DATE_FORMAT_STORAGE
from .models import AttendanceStatus


class DateForm(forms.Form):
    date = forms.DateField(input_formats=[DATE_FORMAT_STORAGE])


class StudentForm(forms.Form):
    roll_no = forms.CharField(max_length=32)
    name = forms.CharField(max_length=150)


class MarkAttendanceForm(forms.Form):
    student_id = forms.UUIDField()
    date = forms.DateField(input_formats=[DATE_FORMAT_STORAGE])
    status = forms.ChoiceField(choices=AttendanceStatus.choices)
    leave_form_submitted = forms.BooleanField(required=False)

    def clean(self):
        cleaned = super().clean()
        # Leave forms only accompany absences
        if cleaned.get('status') != AttendanceStatus.ABSENT:
            cleaned['leave_form_submitted'] = False
        return cleaned


class ShareForm(forms.Form):
    date = forms.DateField(input_formats=[DATE_FORMAT_STORAGE])
    phone = forms.CharField(max_length=30, required=False)
