from rest_framework import serializers

from queueing.models import AvailabilityStatus, EntryStatus, PaymentStatus


class EntryCreateSerializer(serializers.Serializer):
    doctor_id = serializers.IntegerField(min_value=1)
    patient_id = serializers.IntegerField(min_value=1)
    appointment_id = serializers.CharField(max_length=64)
    service_date = serializers.DateField(required=False)
    is_emergency = serializers.BooleanField(required=False, default=False)
    reason_for_visit = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')

    def validate_appointment_id(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('appointment id is required')
        return v


class EntryStatusSerializer(serializers.Serializer):
    entry_id = serializers.UUIDField()
    status = serializers.ChoiceField(choices=EntryStatus.choices)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class EntryRefSerializer(serializers.Serializer):
    entry_id = serializers.UUIDField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class PaymentStatusSerializer(serializers.Serializer):
    entry_id = serializers.UUIDField()
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)


class AvailabilityStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AvailabilityStatus.choices)


class WorkingHoursSerializer(serializers.Serializer):
    # Shape is checked by the availability service, which owns the rules.
    working_hours = serializers.DictField(child=serializers.DictField())


class QueueToggleSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()


class QueueDateQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class QueueListQuerySerializer(serializers.Serializer):
    doctor_id = serializers.IntegerField(min_value=1)
    date = serializers.DateField(required=False)
