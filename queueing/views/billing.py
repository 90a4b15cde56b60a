from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from queueing.permissions import IsBillingRole
from queueing.serializers.queue import PaymentStatusSerializer
from queueing.services import ledger

from .common import ok


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBillingRole])
def update_payment_status(request):
    """Billing reports whether a visit has been paid; the queue only reads it."""
    s = PaymentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = ledger.record_payment_status(
        s.validated_data['entry_id'], s.validated_data['payment_status'], operator=request.user
    )
    return ok(ledger.format_entry(entry))
