from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .gst import compute_gst, get_default_gst_rate, get_gst_rates, is_inter_state
from .serializers import GSTCalculationSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def gst_calculate(request):
    """
    Split GST for an amount.

    When both ``seller_state`` and ``buyer_state`` are given they decide
    inter-state supply; otherwise the ``is_inter_state`` flag is used.
    """
    serializer = GSTCalculationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    inter_state = data['is_inter_state']
    if data.get('seller_state') and data.get('buyer_state'):
        inter_state = is_inter_state(data['seller_state'], data['buyer_state'])

    breakdown = compute_gst(data['amount'], data['gst_rate'], inter_state).rounded()
    return Response({
        'amount': data['amount'],
        'gst_rate': data['gst_rate'],
        'is_inter_state': inter_state,
        'is_exempt': breakdown.is_exempt,
        **breakdown.as_dict(),
        'total_with_tax': breakdown.total + data['amount'],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def gst_rates(request):
    return Response({
        'rates': get_gst_rates(),
        'default_rate': get_default_gst_rate(),
    })
