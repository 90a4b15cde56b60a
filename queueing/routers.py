"""
URL mappings for the clinic queue API.

Paths are grouped by the dashboard that calls them (doctor, patient,
front desk, billing).  Trailing slashes are deliberately omitted.
"""
from django.urls import include, path

from .views import admin_queue, availability, billing, doctor_queue, health, patient_queue
from .views.auth import login_view

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    path('api/auth/login', login_view, name='login'),

    # Doctor
    path('api/doctor/availability', availability.my_availability, name='doctor-availability'),
    path('api/doctor/availability/status', availability.update_availability_status,
         name='doctor-availability-status'),
    path('api/doctor/availability/working-hours', availability.update_working_hours,
         name='doctor-working-hours'),
    path('api/doctor/queue', doctor_queue.queue_list, name='doctor-queue-list'),
    path('api/doctor/queue/status', doctor_queue.queue_status, name='doctor-queue-status'),
    path('api/doctor/queue/toggle', doctor_queue.queue_toggle, name='doctor-queue-toggle'),
    path('api/doctor/queue/call-next', doctor_queue.call_next, name='doctor-queue-call-next'),
    path('api/doctor/queue/item/update-status', doctor_queue.update_entry_status,
         name='doctor-queue-item-update-status'),

    # Patient
    path('api/patient/queue/position', patient_queue.my_queue_position, name='patient-queue-position'),
    path('api/patient/queue/doctor/<int:doctor_id>', patient_queue.doctor_queue_summary,
         name='patient-queue-doctor'),
    path('api/patient/queue/item/cancel', patient_queue.cancel_my_entry, name='patient-queue-item-cancel'),

    # Front desk
    path('api/admin/queue/entries', admin_queue.check_in, name='admin-queue-check-in'),
    path('api/admin/queue/list', admin_queue.admin_queue_list, name='admin-queue-list'),
    path('api/admin/queue/stats', admin_queue.admin_queue_stats, name='admin-queue-stats'),

    # Billing
    path('api/billing/queue/payment-status', billing.update_payment_status, name='billing-payment-status'),

    path('', include('django_prometheus.urls')),
]
