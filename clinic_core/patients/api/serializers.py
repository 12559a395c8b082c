# clinic_core/patients/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.patients.models import Gender, Patient, PatientIdentifier


class PatientWriteSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    middle_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    last_name = serializers.CharField(max_length=100)
    gender = serializers.ChoiceField(choices=Gender.choices, required=False, allow_blank=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=150)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    national_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    mrn = serializers.CharField(max_length=64, required=False, allow_blank=True)
    region = serializers.CharField(max_length=128, required=False, allow_blank=True)
    zone = serializers.CharField(max_length=128, required=False, allow_blank=True)
    woreda = serializers.CharField(max_length=128, required=False, allow_blank=True)
    kebele = serializers.CharField(max_length=64, required=False, allow_blank=True)
    house_number = serializers.CharField(max_length=64, required=False, allow_blank=True)
    occupation = serializers.CharField(max_length=128, required=False, allow_blank=True)


class PatientUpdateSerializer(PatientWriteSerializer):
    """
    PATCH contract: every field optional, at least one required.
    """
    first_name = serializers.CharField(max_length=100, required=False)
    middle_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class PatientIdentifierSerializer(serializers.ModelSerializer):
    class Meta:
        model = PatientIdentifier
        fields = ["identifier_type", "identifier_value", "is_primary"]
        read_only_fields = fields


class PatientSerializer(serializers.ModelSerializer):
    identifiers = PatientIdentifierSerializer(many=True, read_only=True)

    class Meta:
        model = Patient
        fields = [
            "id",
            "tenant_id",
            "facility_id",
            "first_name",
            "middle_name",
            "last_name",
            "full_name",
            "gender",
            "date_of_birth",
            "age",
            "phone",
            "email",
            "national_id",
            "mrn",
            "region",
            "zone",
            "woreda",
            "kebele",
            "house_number",
            "occupation",
            "identifiers",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
