from __future__ import annotations

from rest_framework import serializers

from clinic_core.payers.models import Creditor, Insurer, Program


class ProgramSerializer(serializers.ModelSerializer):
    class Meta:
        model = Program
        fields = ["id", "name", "description", "is_active"]
        read_only_fields = fields


class CreditorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Creditor
        fields = ["id", "name", "code", "contact_phone", "is_active"]
        read_only_fields = fields


class InsurerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Insurer
        fields = ["id", "name", "code", "contact_phone", "is_active"]
        read_only_fields = fields
