# staff/admin.py
from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from .models import AbsenceEntry, LeaveRequest
from .services.absence_ledger import AbsenceLedger
from .services.request_workflow import RequestWorkflow


@admin.register(AbsenceEntry)
class AbsenceEntryAdmin(admin.ModelAdmin):
    list_display = ("staff", "type", "start_date", "end_date", "is_full_day", "hours_count")
    list_filter = ("type", "staff")
    search_fields = ("staff__name", "notes")
    date_hierarchy = "start_date"

    def has_change_permission(self, request, obj=None):
        # Editing in place would bypass the overtime ledger; delete and re-add instead
        return False

    def save_model(self, request, obj, form, change):
        entry = AbsenceLedger().add_absence(
            obj.staff,
            entry_type=obj.type,
            start_date=obj.start_date,
            end_date=obj.end_date,
            is_full_day=obj.is_full_day,
            hours_count=obj.hours_count or None,
            start_time=obj.start_time,
            end_time=obj.end_time,
            notes=obj.notes,
        )
        obj.pk = entry.pk

    def delete_model(self, request, obj):
        AbsenceLedger().remove_absence(obj.staff, obj.pk)

    def delete_queryset(self, request, queryset):
        ledger = AbsenceLedger()
        for entry in queryset.select_related("staff"):
            ledger.remove_absence(entry.staff, entry.pk)


@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    list_display = ("staff", "type", "start_date", "end_date", "status", "created_at")
    list_filter = ("status", "type", "staff")
    search_fields = ("staff__name", "notes")
    actions = ["approve_selected", "reject_selected"]

    def _decide(self, request, queryset, decide, verb):
        done = 0
        for req in queryset.filter(status=LeaveRequest.STATUS_PENDING):
            try:
                decide(req)
            except ValidationError as e:
                self.message_user(
                    request, f"Request #{req.pk} not {verb}: {' '.join(e.messages)}", level=messages.ERROR
                )
                continue
            done += 1
        self.message_user(request, f"{done} request(s) {verb}.")

    @admin.action(description="Approve selected pending requests")
    def approve_selected(self, request, queryset):
        self._decide(request, queryset, RequestWorkflow().approve, "approved")

    @admin.action(description="Reject selected pending requests")
    def reject_selected(self, request, queryset):
        self._decide(request, queryset, RequestWorkflow().reject, "rejected")
