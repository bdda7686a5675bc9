"""
Patient (assistido) endpoints.

``POST /api/pacientes`` registers a patient and seeds the first history
row; ``PATCH /api/pacientes/<id>/status-jornada`` applies an arbitrary
journey transition with an optional ``motivo``.
"""
from __future__ import annotations

from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import DEFAULT_JOURNEY_STATUS, Patient
from ..permissions import require
from ..serializers.journey import PatientCreateSerializer, PatientSerializer, StatusChangeSerializer
from ..services import journey


@api_view(['POST'])
@permission_classes([IsAuthenticated, require('pacientes', 'create')])
def create_patient(request):
    ser = PatientCreateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    actor = journey.normalize_user_id(request.user.pk)

    with transaction.atomic():
        patient = Patient.objects.create(
            name=data['name'],
            status_jornada=data.get('status_jornada') or DEFAULT_JOURNEY_STATUS,
            updated_at=timezone.now(),
        )
        journey.create_initial_history(patient.pk, actor)

    return Response({
        'success': True,
        'patient': PatientSerializer(patient).data,
        'history': journey.history_for(patient.pk),
    }, status=status.HTTP_201_CREATED)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, require('pacientes', 'edit')])
def change_journey_status(request, pk):
    ser = StatusChangeSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    result = journey.transition_status(
        pk, data['status_jornada'], journey.normalize_user_id(request.user.pk), reason=data.get('motivo')
    )
    return Response({
        'success': True,
        'previous_status': result.previous_status,
        'status_jornada': result.new_status,
        'changed': result.changed,
        'history': journey.history_for(pk),
    })
