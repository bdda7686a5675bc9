from rest_framework import serializers

from casework.models import LinkRequest
from casework.serializers.journey import clean_text


class LinkUserSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)


class LinkRequestCreateSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)

    def validate_notes(self, v):
        return clean_text(v) or None


class LinkDecisionSerializer(LinkRequestCreateSerializer):
    pass


class LinkRequestListQuerySerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)


class LinkRequestSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    professional_id = serializers.CharField(read_only=True)
    decided_by_user_id = serializers.IntegerField(read_only=True, allow_null=True)
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = LinkRequest
        fields = [
            'id', 'user_id', 'username', 'professional_id', 'status', 'notes',
            'decided_at', 'decided_by_user_id', 'created_at', 'updated_at',
        ]
