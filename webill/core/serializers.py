from collections.abc import Mapping

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from webill.tax.gst import validate_gstin
from .models import AuditLog, Setting, User

GSTIN_SETTING_KEYS = ('business_gstin',)


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'full_name', 'phone',
                  'is_active', 'is_staff', 'created_at', 'updated_at']
        read_only_fields = ['username', 'is_active', 'is_staff', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']

    def validate(self, attrs):
        if attrs['password'] != attrs.pop('password_confirm'):
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']
        read_only_fields = ['updated_at']

    def validate(self, attrs):
        key = attrs.get('key', getattr(self.instance, 'key', None))
        if key in GSTIN_SETTING_KEYS and 'value' in attrs:
            attrs['value'] = attrs['value'].strip().upper()
            if not validate_gstin(attrs['value']):
                raise serializers.ValidationError({'value': 'Enter a valid 15-character GSTIN'})
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']


class StrictFieldsMixin:
    """Reject request bodies carrying fields the serializer does not declare."""

    def to_internal_value(self, data):
        if isinstance(data, Mapping):
            unknown = set(data) - set(self.fields)
            if unknown:
                raise serializers.ValidationError({field: ['Unknown field.'] for field in sorted(unknown)})
        return super().to_internal_value(data)
