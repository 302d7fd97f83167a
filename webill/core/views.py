from django.conf import settings as django_settings
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from webill.tax.gst import get_default_gst_rate, get_gst_rates
from .exceptions import ConstraintViolation
from .models import AuditLog, Setting
from .serializers import AuditLogSerializer, SettingSerializer, UserCreateSerializer, UserSerializer
from .utils import create_audit_log, paginate


class BillingTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Access tokens carry the username and staff flag for the frontend"""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['is_staff'] = user.is_staff
        return token


class BillingTokenObtainPairView(TokenObtainPairView):
    serializer_class = BillingTokenObtainPairSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    user = serializer.save()
    refresh = RefreshToken.for_user(user)
    return Response({
        'user': UserSerializer(user).data,
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """The signed-in user; PATCH edits name, email and phone"""
    if request.method == 'PATCH':
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
    return Response(UserSerializer(request.user).data)


def _billing_defaults():
    return {
        'business_name': django_settings.WEBILL_BUSINESS_NAME,
        'business_state': django_settings.WEBILL_BUSINESS_STATE,
        'currency': django_settings.WEBILL_CURRENCY,
        'gst_rates': get_gst_rates(),
        'default_gst_rate': get_default_gst_rate(),
        'default_payment_terms_days': django_settings.WEBILL_DEFAULT_PAYMENT_TERMS_DAYS,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def setting_list_create(request):
    """
    Business settings (invoice footer, bank details, GSTIN...). Everyone can
    read them alongside the deployment's billing defaults; only staff write.
    """
    if request.method == 'GET':
        return Response({
            'defaults': _billing_defaults(),
            'settings': SettingSerializer(Setting.objects.order_by('key'), many=True).data,
        })

    if not request.user.is_staff:
        raise ConstraintViolation('Only staff can change business settings')
    serializer = SettingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    setting = serializer.save()
    create_audit_log(request=request, action='create', model_name='Setting',
                     object_id=setting.id, object_name=setting.key)
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def setting_detail(request, key):
    setting = get_object_or_404(Setting, key=key)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)

    if not request.user.is_staff:
        raise ConstraintViolation('Only staff can change business settings')

    if request.method == 'DELETE':
        setting.delete()
        create_audit_log(request=request, action='delete', model_name='Setting',
                         object_id=key, object_name=key)
        return Response(status=status.HTTP_204_NO_CONTENT)

    old_value = setting.value
    serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    setting = serializer.save()
    create_audit_log(request=request, action='update', model_name='Setting', object_id=setting.id,
                     object_name=setting.key, changes={'old': old_value, 'new': setting.value})
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """
    Audit trail, newest first. Filters: ``action``, ``model``, ``object_id``,
    ``reference`` (invoice/transaction/payment number), ``date_from``/``date_to``.
    Staff see every entry, other users only their own.
    """
    queryset = AuditLog.objects.select_related('user').order_by('-created_at', '-id')
    if not request.user.is_staff:
        queryset = queryset.filter(user=request.user)

    params = request.query_params
    exact_filters = {
        'action': 'action',
        'model': 'model_name',
        'object_id': 'object_id',
        'reference': 'object_reference',
        'date_from': 'created_at__date__gte',
        'date_to': 'created_at__date__lte',
    }
    lookups = {field: params[param] for param, field in exact_filters.items() if params.get(param)}
    return Response(paginate(request, queryset.filter(**lookups), AuditLogSerializer, default_limit=50))
