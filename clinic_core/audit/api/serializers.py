# clinic_core/audit/api/serializers.py
from rest_framework import serializers

from clinic_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)
    actor_username = serializers.CharField(source="actor_user.username", read_only=True, default=None)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "event_code",
            "entity_type",
            "entity_id",
            "actor_user_id",
            "actor_username",
            "timestamp",
            "metadata",
        ]
        read_only_fields = fields


class AuditEventFilterSerializer(serializers.Serializer):
    entity_type = serializers.CharField(required=False, help_text="e.g. Visit, Payment, Patient")
    entity_id = serializers.UUIDField(required=False)
    event_code = serializers.CharField(
        required=False, help_text='Exact code, or a prefix ending in "." such as "payment."'
    )
    actor_user_id = serializers.IntegerField(required=False)
    since = serializers.DateTimeField(required=False)
