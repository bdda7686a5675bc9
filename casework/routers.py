"""
URL mappings for the case-management API.

All endpoints live under ``/api/`` except the health probe.  Trailing
slashes are deliberately omitted (``APPEND_SLASH = False``) to match the
paths the front-end already calls.
"""
from django.urls import path

from .views import health
from .views.access_settings import access_settings_view
from .views.patients import change_journey_status, create_patient
from .views.professionals import (
    approve_link_request,
    auto_link,
    create_link_request,
    link_user,
    list_link_requests,
    reject_link_request,
    unlink_user,
)
from .views.social_interviews import create_social_interview, update_social_interview
from .views.vaga_decisions import create_vaga_decision


urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    # Journey
    path('api/vaga-decisions', create_vaga_decision, name='vaga_decisions'),
    path('api/social-interviews', create_social_interview, name='social_interviews'),
    path('api/social-interviews/<int:pk>', update_social_interview, name='social_interview_detail'),
    path('api/pacientes', create_patient, name='patients'),
    path('api/pacientes/<uuid:pk>/status-jornada', change_journey_status, name='patient_status'),
    # Professional links
    path('api/profissionais/link-requests', list_link_requests, name='link_requests'),
    path('api/profissionais/link-requests/<int:pk>/approve', approve_link_request, name='link_request_approve'),
    path('api/profissionais/link-requests/<int:pk>/reject', reject_link_request, name='link_request_reject'),
    path('api/profissionais/auto-link', auto_link, name='professional_auto_link'),
    path('api/profissionais/<uuid:pk>/link-user', link_user, name='professional_link_user'),
    path('api/profissionais/<uuid:pk>/unlink-user', unlink_user, name='professional_unlink_user'),
    path('api/profissionais/<uuid:pk>/link-requests', create_link_request, name='professional_link_requests'),
    # Settings
    path('api/settings/access', access_settings_view, name='access_settings'),
]
