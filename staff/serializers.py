from rest_framework import serializers

from booking.models import Staff

from .models import ABSENCE_TYPE_CHOICES, REQUEST_TYPE_CHOICES, AbsenceEntry, LeaveRequest


class AbsenceEntrySerializer(serializers.ModelSerializer):
    staff = serializers.PrimaryKeyRelatedField(queryset=Staff.objects.all())
    staff_name = serializers.CharField(source="staff.name", read_only=True)
    type = serializers.ChoiceField(choices=ABSENCE_TYPE_CHOICES)
    # Omitted -> derived from the contract hours (full day) or the time window
    hours_count = serializers.DecimalField(max_digits=6, decimal_places=2, required=False, allow_null=True)

    class Meta:
        model = AbsenceEntry
        fields = [
            "id",
            "staff",
            "staff_name",
            "type",
            "start_date",
            "end_date",
            "is_full_day",
            "start_time",
            "end_time",
            "hours_count",
            "notes",
            "created_at",
        ]
        read_only_fields = ["created_at"]


class LeaveRequestSerializer(serializers.ModelSerializer):
    staff = serializers.PrimaryKeyRelatedField(queryset=Staff.objects.all())
    staff_name = serializers.CharField(source="staff.name", read_only=True)
    type = serializers.ChoiceField(choices=REQUEST_TYPE_CHOICES)

    class Meta:
        model = LeaveRequest
        fields = [
            "id",
            "staff",
            "staff_name",
            "type",
            "start_date",
            "end_date",
            "is_full_day",
            "start_time",
            "end_time",
            "status",
            "notes",
            "target_absence",
            "created_at",
            "decided_at",
        ]
        read_only_fields = ["status", "target_absence", "created_at", "decided_at"]
