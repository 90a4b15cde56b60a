"""
Django admin registrations for the queue models.

Entries and transitions are read-mostly here; status changes should go
through the API so the state machine and its locks apply.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    DoctorAvailability,
    QueueDay,
    QueueEntry,
    QueueEntryTransition,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(DoctorAvailability)
class DoctorAvailabilityAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'status', 'queue_active', 'current_number', 'max_emergency_slots', 'updated_at')
    list_filter = ('status', 'queue_active')


@admin.register(QueueDay)
class QueueDayAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'service_date', 'last_number')
    list_filter = ('service_date',)
    readonly_fields = ('last_number',)


class QueueEntryTransitionInline(admin.TabularInline):
    model = QueueEntryTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'timestamp', 'reason')
    can_delete = False


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):
    list_display = ('queue_number', 'is_emergency', 'doctor', 'patient', 'service_date', 'status', 'payment_status')
    list_filter = ('status', 'payment_status', 'is_emergency', 'service_date')
    search_fields = ('appointment_id', 'patient__username', 'doctor__username')
    readonly_fields = ('entry_id', 'queue_number', 'status', 'created_at', 'status_changed_at')
    inlines = [QueueEntryTransitionInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
