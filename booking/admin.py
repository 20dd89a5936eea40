from django.contrib import admin
from .models import Service, ClientProfile, Staff, Appointment

@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "category", "price", "duration_minutes", "active")
    list_filter = ("active", "category")
    search_fields = ("name",)
    list_editable = ("price", "duration_minutes", "active")

@admin.register(ClientProfile)
class ClientProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "phone")
    search_fields = ("name", "email", "phone")

@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "role", "work_start", "work_end", "overtime_balance_hours")
    search_fields = ("name", "email")
    # Moved only by the absence ledger
    readonly_fields = ("overtime_balance_hours",)

@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "client", "service", "staff", "start_time", "status")
    list_filter = ("status", "staff", "service")
    search_fields = ("client__name", "service__name", "staff__name")
    date_hierarchy = "start_time"
