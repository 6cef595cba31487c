from dataclasses import asdict

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from . import dates, report as report_fmt, services, sharing
from .calculator import AttendanceGrade
from .export import build_stats_workbook
from .forms import DateForm, MarkAttendanceForm, ShareForm, StudentForm

HTTP_STATUS_FOR_FAILURE = {
    services.VALIDATION: 400,
    services.NOT_FOUND: 404,
    services.STORAGE: 503,
}


def _selected_date(request):
    """The ``date`` query/form parameter, today when absent, None when invalid."""
    raw = request.GET.get('date') or request.POST.get('date')
    if not raw:
        return dates.today()
    return dates.parse_storage_date(raw)


def _invalid_date():
    return JsonResponse({'error': 'Invalid date; expected YYYY-MM-DD'}, status=400)


def _failure(result):
    return JsonResponse(
        {'error': result.error, 'kind': result.kind},
        status=HTTP_STATUS_FOR_FAILURE.get(result.kind, 400),
    )


def _form_errors(form):
    return JsonResponse({'error': 'Invalid input', 'fields': form.errors.get_json_data()}, status=400)


def _student_json(s):
    return {
        'id': str(s.pk),
        'roll_no': s.roll_no,
        'name': s.name,
        'is_active': s.is_active,
        'created_at': s.created_at.isoformat() if s.created_at else None,
    }


def _record_json(r):
    if r is None:
        return None
    return {
        'id': str(r.pk),
        'student_id': str(r.student_id),
        'date': dates.to_storage(r.date),
        'status': r.status,
        'leave_form_submitted': r.leave_form_submitted,
        'created_at': r.created_at.isoformat() if r.created_at else None,
        'updated_at': r.updated_at.isoformat() if r.updated_at else None,
    }


def _summary_json(summary):
    data = asdict(summary)
    data['class_average'] = round(summary.class_average, 2)
    return data


def _stats_json(s):
    return {
        'student_id': s.student_id,
        'roll_no': s.roll_no,
        'name': s.name,
        'total_classes': s.total_classes,
        'attended_classes': s.attended_classes,
        'attendance_percentage': round(s.attendance_percentage, 2),
        'classes_needed_for_75': s.classes_needed_for_75,
        'classes_can_miss': s.classes_can_miss,
        'grade': s.grade.display_name,
        'grade_color': s.grade.color_hex,
        'at_risk': s.at_risk,
    }


def _bulk_json(result):
    return {
        'ok': result.ok,
        'saved': len(result.saved),
        'errors': [{'student_id': e.student_id, 'error': e.error} for e in result.errors],
    }


@login_required
@require_GET
def dashboard(request):
    view_date = _selected_date(request) or dates.today()
    summary = services.summary_for_date(view_date)
    return JsonResponse({
        'date': dates.to_storage(view_date),
        'label': dates.relative_label(view_date),
        'day': dates.day_of_week(view_date),
        'is_today': dates.is_today(view_date),
        'summary': _summary_json(summary),
        'recent_dates': services.recent_attendance_dates(),
    })


@login_required
@require_GET
def day_attendance(request):
    target_date = _selected_date(request)
    if target_date is None:
        return _invalid_date()
    rows = services.students_for_date(target_date)
    return JsonResponse({
        'date': dates.to_storage(target_date),
        'students': [
            {'student': _student_json(row.student), 'record': _record_json(row.record)}
            for row in rows
        ],
        'summary': _summary_json(services.summary_for_date(target_date)),
    })


@login_required
@require_POST
def mark_attendance(request):
    form = MarkAttendanceForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    data = form.cleaned_data
    result = services.mark_attendance(
        data['student_id'], data['date'], data['status'], data['leave_form_submitted'],
    )
    if not result.ok:
        return _failure(result)
    return JsonResponse({'record': _record_json(result.value)})


@login_required
@require_POST
def mark_all_present(request):
    form = DateForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    result = services.mark_all_present(form.cleaned_data['date'])
    return JsonResponse(_bulk_json(result))


@login_required
@require_POST
def delete_day(request):
    if not request.user.is_staff:
        return JsonResponse({'error': 'Only staff can delete a day of attendance'}, status=403)
    form = DateForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    result = services.delete_attendance_for_date(form.cleaned_data['date'])
    if not result.ok:
        return _failure(result)
    return JsonResponse({'deleted': result.value})


@login_required
@require_GET
def day_summary(request):
    target_date = _selected_date(request)
    if target_date is None:
        return _invalid_date()
    return JsonResponse(_summary_json(services.summary_for_date(target_date)))


@login_required
@require_GET
def day_report(request):
    """Plain-text digest; ``?format=quick`` or ``?format=absentees`` for the short forms."""
    target_date = _selected_date(request)
    if target_date is None:
        return _invalid_date()
    daily = services.report_for_date(target_date)
    kind = request.GET.get('format', 'full')
    if kind == 'quick':
        text = report_fmt.format_quick_summary(
            daily.date, daily.summary.present_count, daily.summary.total_students,
        )
    elif kind == 'absentees':
        text = report_fmt.format_absentee_message(daily.date, daily.absentees)
    else:
        text = report_fmt.format_attendance_report(daily, footer=settings.DAILYTRACK_REPORT_FOOTER)
    return HttpResponse(text, content_type='text/plain; charset=utf-8')


@login_required
@require_POST
def share_report(request):
    form = ShareForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    daily = services.report_for_date(form.cleaned_data['date'])
    text = report_fmt.format_attendance_report(daily, footer=settings.DAILYTRACK_REPORT_FOOTER)
    outcome = sharing.deliver(text, sharing.configured_channels(phone=form.cleaned_data['phone']))
    return JsonResponse(
        {
            'status': outcome.status,
            'channel': outcome.channel,
            'url': outcome.url,
            'reason': outcome.reason,
            'text': text,
        },
        status=200 if outcome.delivered else 503,
    )


@login_required
@require_GET
def stats(request):
    """Per-student statistics; ``?grade=POOR`` (any grade name) narrows to one band."""
    grade_name = request.GET.get('grade', '').strip().upper().replace(' ', '_')
    if not grade_name:
        return JsonResponse({'students': [_stats_json(s) for s in services.all_students_stats()]})
    try:
        grade = AttendanceGrade[grade_name]
    except KeyError:
        return JsonResponse({'error': f"Unknown grade {request.GET['grade']!r}"}, status=400)
    return JsonResponse({'students': [_stats_json(s) for s in services.students_by_grade(grade)]})


@login_required
@require_GET
def stats_export(request):
    wb = build_stats_workbook(services.all_students_stats())
    filename = f"attendance_{dates.today_string()}.xlsx"
    resp = HttpResponse(content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(resp)
    return resp


@login_required
@require_GET
def analytics(request):
    result = services.class_analytics()
    return JsonResponse({
        'class_average': round(result.class_average, 2),
        'total_students': result.total_students,
        'students_above_75': result.students_above_75,
        'students_below_75': result.students_below_75,
        'students_at_risk': result.students_at_risk,
        'grade_distribution': {g.display_name: n for g, n in result.grade_distribution.items()},
        'needing_attention': [_stats_json(s) for s in result.needing_attention],
        'top_performers': [_stats_json(s) for s in result.top_performers],
    })


@login_required
@require_GET
def student_list(request):
    students = services.search_students(request.GET.get('q', ''))
    return JsonResponse({'students': [_student_json(s) for s in students]})


@login_required
@require_POST
def student_create(request):
    form = StudentForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    result = services.add_student(form.cleaned_data['name'], form.cleaned_data['roll_no'])
    if not result.ok:
        return _failure(result)
    return JsonResponse({'student': _student_json(result.value)}, status=201)


@login_required
@require_POST
def student_edit(request, pk):
    form = StudentForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)
    result = services.update_student(pk, form.cleaned_data['name'], form.cleaned_data['roll_no'])
    if not result.ok:
        return _failure(result)
    return JsonResponse({'student': _student_json(result.value)})


@login_required
@require_POST
def student_delete(request, pk):
    result = services.deactivate_student(pk)
    if not result.ok:
        return _failure(result)
    return JsonResponse({'student': _student_json(result.value)})


@login_required
@require_GET
def student_history(request, pk):
    student = services.get_student(pk)
    if student is None:
        return JsonResponse({'error': 'Student not found', 'kind': services.NOT_FOUND}, status=404)
    student_stats = services.student_stats(pk)
    return JsonResponse({
        'student': _student_json(student),
        'stats': _stats_json(student_stats),
        'records': [_record_json(r) for r in services.student_history(pk)],
    })
