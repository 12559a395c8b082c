from __future__ import annotations

from rest_framework import serializers

from clinic_core.catalog.models import MedicalService


class MedicalServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = MedicalService
        fields = ["id", "code", "name", "category", "price", "is_active"]
        read_only_fields = fields
