"""
Vaga (placement) decisions.

``POST /api/vaga-decisions`` records whether a patient was approved for
a vacancy or referred elsewhere and moves the patient's journey to the
decided status.  The decision row and the transition commit together.
"""
from __future__ import annotations

import structlog
from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import VagaDecision
from ..permissions import require
from ..serializers.journey import VagaDecisionCreateSerializer
from ..services import journey

log = structlog.get_logger(__name__)

# any action on the professionals module
CanDecideVaga = require('profissionais', 'view', ('profissionais', 'create'), ('profissionais', 'edit'))


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanDecideVaga])
def create_vaga_decision(request):
    ser = VagaDecisionCreateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    actor = journey.normalize_user_id(request.user.pk)

    with transaction.atomic():
        patient = journey.lock_patient(data['assistido_id'])
        decision = VagaDecision.objects.create(
            assistido=patient,
            decisao=data['decisao'],
            justificativa=data['justificativa'],
            decided_by_id=actor,
        )
        result = journey.transition_status(patient.pk, data['decisao'], actor, reason=data['justificativa'])

    log.info('vaga.decided', decision_id=decision.pk, patient_id=str(patient.pk), decisao=decision.decisao)
    return Response({
        'success': True,
        'decisionId': decision.pk,
        'assistido_id': str(patient.pk),
        'decisao': decision.decisao,
        'status_jornada_atual': result.new_status,
    }, status=status.HTTP_201_CREATED)
