# clinic_core/iam/api/serializers.py
from __future__ import annotations

from rest_framework import serializers


class LoginRequestSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(style={"input_type": "password"})


class DetailSerializer(serializers.Serializer):
    detail = serializers.CharField()


class MeUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    email = serializers.EmailField(allow_blank=True)
    is_superuser = serializers.BooleanField()


class MembershipSerializer(serializers.Serializer):
    tenant_id = serializers.UUIDField()
    tenant_code = serializers.CharField()
    facility_id = serializers.UUIDField()
    facility_code = serializers.CharField()
    facility_name = serializers.CharField()
    role_code = serializers.CharField()
    role_name = serializers.CharField()
    is_primary = serializers.BooleanField()


class ActiveScopeSerializer(serializers.Serializer):
    tenant_id = serializers.UUIDField()
    facility_id = serializers.UUIDField()
    role = serializers.CharField(allow_null=True)


class MeResponseSerializer(serializers.Serializer):
    user = MeUserSerializer()
    memberships = MembershipSerializer(many=True)
    active_scope = ActiveScopeSerializer(allow_null=True)
