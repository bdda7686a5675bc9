"""
Django admin registrations for the casework models.

History rows are append-only, so their admin is read-only; link
requests are adjudicated through the API (which enforces the policy
and writes the audit trail), so the admin only displays them.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    LinkRequest,
    Patient,
    Professional,
    SocialInterview,
    StatusHistoryRecord,
    SystemSettings,
    User,
    VagaDecision,
)
from .services import access_settings
from .services.audit import log_action


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'name', 'role', 'status', 'is_staff', 'is_superuser')
    list_filter = ('role', 'status')
    search_fields = ('username', 'name', 'email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'status_jornada', 'updated_at')
    list_filter = ('status_jornada',)
    search_fields = ('name',)
    # status changes must go through the journey service
    readonly_fields = ('status_jornada',)


@admin.register(StatusHistoryRecord)
class StatusHistoryRecordAdmin(ReadOnlyAdmin):
    list_display = ('assistido', 'status_anterior', 'status_novo', 'changed_by', 'changed_at')
    list_filter = ('status_novo',)


@admin.register(SocialInterview)
class SocialInterviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'interview_date', 'assistente_social', 'created_by')


@admin.register(VagaDecision)
class VagaDecisionAdmin(ReadOnlyAdmin):
    list_display = ('id', 'assistido', 'decisao', 'decided_by', 'decided_at')
    list_filter = ('decisao',)


@admin.register(Professional)
class ProfessionalAdmin(admin.ModelAdmin):
    list_display = ('id', 'funcao', 'email', 'status', 'user')
    list_filter = ('status',)
    search_fields = ('email', 'funcao')
    readonly_fields = ('user',)


@admin.register(LinkRequest)
class LinkRequestAdmin(ReadOnlyAdmin):
    list_display = ('id', 'user', 'professional', 'status', 'decided_by_user', 'decided_at', 'created_at')
    list_filter = ('status',)


@admin.register(SystemSettings)
class SystemSettingsAdmin(admin.ModelAdmin):
    """Edits the policy row through the access settings service."""
    list_display = ('id', 'registration_mode', 'link_policy', 'updated_at')
    fields = access_settings.EDITABLE_FIELDS + ('allow_public_registration',)
    readonly_fields = ('allow_public_registration',)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        changes = {name: form.cleaned_data[name] for name in access_settings.EDITABLE_FIELDS
                   if name in form.cleaned_data}
        access_settings.update_access_settings(changes)
        log_action(user=request.user, action='settings.access.update', object_type='system_settings',
                   object_id=access_settings.SETTINGS_PK, detail=changes)
        obj.refresh_from_db()


@admin.register(AuditEvent)
class AuditEventAdmin(ReadOnlyAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
