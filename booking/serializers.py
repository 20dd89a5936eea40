from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework import serializers

from .models import Appointment, ClientProfile, Service, Staff


class ClientProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientProfile
        fields = ["id", "name", "email", "phone", "notes"]


class ServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = ["id", "name", "description", "category", "duration_minutes", "price", "active"]


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = [
            "id",
            "name",
            "email",
            "role",
            "bio",
            "work_start",
            "work_end",
            "break_start",
            "break_end",
            "weekly_closures",
            "manual_unavailable_dates",
            "total_vacation_days_per_year",
            "hours_per_day_contract",
            "overtime_balance_hours",
        ]
        # Only the absence ledger moves the balance
        read_only_fields = ["overtime_balance_hours"]

    def validate(self, attrs):
        # Run Staff.clean() on the merged state so API and admin share one rule set
        instance = Staff(**{**self._current_values(), **attrs})
        try:
            instance.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return attrs

    def _current_values(self):
        if self.instance is None:
            return {}
        return {
            f: getattr(self.instance, f)
            for f in ("work_start", "work_end", "break_start", "break_end",
                      "weekly_closures", "manual_unavailable_dates")
        }


class AppointmentSerializer(serializers.ModelSerializer):
    client = serializers.PrimaryKeyRelatedField(queryset=ClientProfile.objects.all())
    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.all())
    # Optional: the server assigns the first free staff member when omitted
    staff = serializers.PrimaryKeyRelatedField(queryset=Staff.objects.all(), allow_null=True, required=False)
    staff_name = serializers.CharField(source="staff.name", read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "client",
            "service",
            "staff",
            "staff_name",
            "start_time",
            "status",
            "notes",
            "created_at",
            "cancellation_time",
        ]
        read_only_fields = ["created_at", "status", "cancellation_time"]

    def validate_start_time(self, value):
        if timezone.is_naive(value):
            value = timezone.make_aware(value, timezone.get_current_timezone())
        return value

    def validate(self, attrs):
        start_time = attrs.get("start_time")
        if start_time and start_time <= timezone.now():
            raise serializers.ValidationError("Start time must be in the future.")
        service = attrs.get("service")
        if service is not None and not service.active:
            raise serializers.ValidationError("This service is not currently available.")
        return attrs
