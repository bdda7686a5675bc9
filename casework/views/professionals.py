"""
Professional-to-account linking endpoints.

Direct link/unlink is for administrators (or anyone with
``profissionais:edit`` when the policy is not ``MANUAL_LINK_ADMIN``).
Link requests are filed by users and adjudicated by administrators
under ``SELF_CLAIM_WITH_APPROVAL``; ``auto-link`` serves
``AUTO_LINK_BY_EMAIL``.  Policy and admin checks live in
:mod:`casework.services.links`.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import require
from ..serializers.links import (
    LinkDecisionSerializer,
    LinkRequestCreateSerializer,
    LinkRequestListQuerySerializer,
    LinkRequestSerializer,
    LinkUserSerializer,
)
from ..services import links

CanViewProfessionals = require('profissionais', 'view')
CanEditProfessionals = require('profissionais', 'edit')


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, CanEditProfessionals])
def link_user(request, pk):
    ser = LinkUserSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    result = links.direct_link(pk, ser.validated_data['user_id'], request.user)
    return Response({'success': True, **result})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, CanEditProfessionals])
def unlink_user(request, pk):
    result = links.direct_unlink(pk, request.user)
    return Response({'success': True, **result})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanViewProfessionals])
def create_link_request(request, pk):
    ser = LinkRequestCreateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    link_request = links.create_link_request(pk, request.user, notes=ser.validated_data.get('notes'))
    return Response(
        {'success': True, 'request': LinkRequestSerializer(link_request).data},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, CanEditProfessionals])
def list_link_requests(request):
    q = LinkRequestListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = links.list_link_requests(request.user, status=q.validated_data.get('status') or None)
    return Response({'success': True, 'data': LinkRequestSerializer(items, many=True).data})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def approve_link_request(request, pk: int):
    ser = LinkDecisionSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    link_request = links.approve_link_request(pk, request.user, notes=ser.validated_data.get('notes'))
    return Response({'success': True, 'request': LinkRequestSerializer(link_request).data})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def reject_link_request(request, pk: int):
    ser = LinkDecisionSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    link_request = links.reject_link_request(pk, request.user, notes=ser.validated_data.get('notes'))
    return Response({'success': True, 'request': LinkRequestSerializer(link_request).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def auto_link(request):
    result = links.auto_link_by_email(request.user)
    return Response({'success': True, **result})
