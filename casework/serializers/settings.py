from rest_framework import serializers

from casework.services.access_settings import LINK_POLICIES, PUBLIC_SIGNUP_DEFAULT_STATUSES, REGISTRATION_MODES


class AccessSettingsUpdateSerializer(serializers.Serializer):
    """Partial update of the access policy; values are case-insensitive."""
    registration_mode = serializers.CharField(required=False)
    public_signup_default_status = serializers.CharField(required=False)
    link_policy = serializers.CharField(required=False)
    allow_create_user_from_professional = serializers.BooleanField(required=False)
    block_duplicate_email = serializers.BooleanField(required=False)

    def _choice(self, value, allowed, upper=True):
        value = (value or '').strip()
        value = value.upper() if upper else value.lower()
        if value not in allowed:
            raise serializers.ValidationError(f"use um de: {', '.join(allowed)}")
        return value

    def validate_registration_mode(self, v):
        return self._choice(v, REGISTRATION_MODES)

    def validate_public_signup_default_status(self, v):
        return self._choice(v, PUBLIC_SIGNUP_DEFAULT_STATUSES, upper=False)

    def validate_link_policy(self, v):
        return self._choice(v, LINK_POLICIES)
