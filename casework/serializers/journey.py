import datetime
import re

import bleach
from rest_framework import serializers

from casework.models import JOURNEY_STATUSES, Patient, SocialInterview, VagaDecision


def clean_text(value):
    if value is None:
        return None
    return bleach.clean(str(value).strip(), strip=True)


class VagaDecisionCreateSerializer(serializers.Serializer):
    assistido_id = serializers.CharField(max_length=64)
    decisao = serializers.CharField(max_length=32)
    justificativa = serializers.CharField(allow_blank=True, trim_whitespace=True)

    def validate_assistido_id(self, v):
        return v.strip()

    def validate_decisao(self, v):
        v = (v or '').strip().lower()
        if v not in dict(VagaDecision.DECISION_CHOICES):
            raise serializers.ValidationError('decisao inválida. Use aprovado ou encaminhado')
        return v

    def validate_justificativa(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('justificativa é obrigatória')
        return v


_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def _iso_date(value):
    text = str(value or '').strip()
    if _DATE_RE.match(text):
        try:
            return datetime.date.fromisoformat(text)
        except ValueError:
            pass
    raise serializers.ValidationError('interview_date inválida (use AAAA-MM-DD)')


class SocialInterviewSerializer(serializers.Serializer):
    """Known interview fields; the remaining body keys are kept in ``payload``."""
    patient_id = serializers.CharField(max_length=64, required=False)
    interview_date = serializers.CharField(max_length=10, required=False)
    assistente_social = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)

    def validate_patient_id(self, v):
        return v.strip()

    def validate_interview_date(self, v):
        return _iso_date(v)

    def validate_assistente_social(self, v):
        return clean_text(v) or None

    def validate(self, attrs):
        partial_update = self.context.get('partial_update', False)
        if not attrs.get('patient_id') and not partial_update:
            raise serializers.ValidationError({'patient_id': 'patient_id é obrigatório'})
        if not attrs.get('interview_date') and not partial_update:
            raise serializers.ValidationError({'interview_date': 'interview_date inválida (use AAAA-MM-DD)'})
        return attrs


def interview_dto(interview: SocialInterview) -> dict:
    payload = interview.payload if isinstance(interview.payload, dict) else {}
    return {
        **payload,
        'id': interview.id,
        'patient_id': str(interview.patient_id),
        'interview_date': interview.interview_date.isoformat() if interview.interview_date else None,
        'assistente_social': interview.assistente_social,
        'created_by': interview.created_by_id,
        'created_at': interview.created_at,
        'updated_at': interview.updated_at,
    }


class PatientCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    status_jornada = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('nome deve ter ao menos 2 caracteres')
        return v

    def validate_status_jornada(self, v):
        v = (v or '').strip().lower()
        if v and v not in JOURNEY_STATUSES:
            raise serializers.ValidationError('status_jornada inválido')
        return v


class StatusChangeSerializer(serializers.Serializer):
    status_jornada = serializers.CharField(max_length=32)
    motivo = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_motivo(self, v):
        return clean_text(v) or None


class PatientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = ['id', 'name', 'status_jornada', 'created_at', 'updated_at']
