"""
Access policy endpoints (``/api/settings/access``).

GET returns the normalised policy to anyone with
``configuracoes:view``; PUT is for administrators holding
``configuracoes:edit`` and accepts any subset of the editable fields.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsAdminActor, require
from ..serializers.settings import AccessSettingsUpdateSerializer
from ..services import access_settings
from ..services.audit import log_action

CanViewSettings = require('configuracoes', 'view')
CanEditSettings = require('configuracoes', 'edit')


class CanReadOrWriteSettings(CanViewSettings):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method == 'GET':
            return super().has_permission(request, view)
        return IsAdminActor().has_permission(request, view) and CanEditSettings().has_permission(request, view)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, CanReadOrWriteSettings])
def access_settings_view(request):
    if request.method == 'GET':
        current = access_settings.read_access_settings()
        return Response({'success': True, 'data': current.as_dict()})

    ser = AccessSettingsUpdateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    updated = access_settings.update_access_settings(ser.validated_data)
    log_action(user=request.user, action='settings.access.update', object_type='system_settings',
               object_id=access_settings.SETTINGS_PK, detail=dict(ser.validated_data))
    return Response({'success': True, 'data': updated.as_dict()})
