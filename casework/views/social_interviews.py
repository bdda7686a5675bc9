"""
Social interview endpoints.

Saving an interview, new or edited, moves the patient to
``entrevista_realizada``.  The request body is stored as the interview
payload so the front-end can keep its questionnaire fields without a
schema change.
"""
from __future__ import annotations

import structlog
from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import NotFoundError
from ..models import SocialInterview
from ..serializers.journey import SocialInterviewSerializer, interview_dto
from ..services import journey

log = structlog.get_logger(__name__)

INTERVIEW_STATUS = 'entrevista_realizada'
INTERVIEW_REASON = 'Entrevista Social salva'


def _payload(request) -> dict:
    data = request.data
    if hasattr(data, 'dict'):
        return data.dict()
    return dict(data) if isinstance(data, dict) else {}


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_social_interview(request):
    ser = SocialInterviewSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    actor = journey.normalize_user_id(request.user.pk)

    with transaction.atomic():
        patient = journey.lock_patient(data['patient_id'])
        interview = SocialInterview.objects.create(
            patient=patient,
            interview_date=data['interview_date'],
            assistente_social=data.get('assistente_social'),
            payload=_payload(request),
            created_by_id=actor,
        )
        result = journey.transition_status(patient.pk, INTERVIEW_STATUS, actor, reason=INTERVIEW_REASON)

    log.info('interview.created', interview_id=interview.pk, patient_id=str(patient.pk), changed=result.changed)
    return Response({'success': True, 'interview': interview_dto(interview)}, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_social_interview(request, pk: int):
    # missing fields fall back to the stored interview
    ser = SocialInterviewSerializer(data=request.data, context={'partial_update': True})
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    actor = journey.normalize_user_id(request.user.pk)

    with transaction.atomic():
        interview = SocialInterview.objects.select_for_update().filter(pk=pk).first()
        if interview is None:
            raise NotFoundError('Entrevista social não encontrada.', 'INTERVIEW_NOT_FOUND')
        patient_id = data.get('patient_id') or interview.patient_id
        patient = journey.lock_patient(patient_id)
        interview.patient = patient
        interview.interview_date = data.get('interview_date') or interview.interview_date
        interview.assistente_social = data.get('assistente_social') or interview.assistente_social
        interview.payload = _payload(request)
        interview.save()
        result = journey.transition_status(patient.pk, INTERVIEW_STATUS, actor, reason=INTERVIEW_REASON)

    log.info('interview.updated', interview_id=interview.pk, patient_id=str(patient.pk), changed=result.changed)
    return Response({'success': True, 'interview': interview_dto(interview)})
