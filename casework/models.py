"""
Database models for the case-management backend.

These models capture the two workflows the backend is responsible for:
the patient ("assistido") journey, whose status changes are recorded in
an append-only history table, and the association between staff
records (professionals) and login accounts, including the link requests
that users file and administrators adjudicate.  Table names mirror the
ones used by the existing institutional database so that the service can
run against it directly.
"""
from __future__ import annotations

import uuid
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


JOURNEY_STATUS_CHOICES = [
    ('em_fila_espera', 'Em fila de espera'),
    ('entrevista_realizada', 'Entrevista realizada'),
    ('em_avaliacao', 'Em avaliação'),
    ('em_analise_vaga', 'Em análise de vaga'),
    ('aprovado', 'Aprovado'),
    ('encaminhado', 'Encaminhado'),
    ('matriculado', 'Matriculado'),
    ('ativo', 'Ativo'),
    ('inativo_assistencial', 'Inativo assistencial'),
    ('desligado', 'Desligado'),
]
JOURNEY_STATUSES = frozenset(value for value, _ in JOURNEY_STATUS_CHOICES)
DEFAULT_JOURNEY_STATUS = 'em_fila_espera'


class User(AbstractUser):
    """Login account.

    ``role`` is free text as typed by administrators ("Coordenador
    Geral", "Usuário", ...); it is normalised by the authorization
    service.  ``permissions`` holds extra scopes granted independently of
    the role, either as ``"module:action"`` strings or as objects with
    ``module`` and ``action`` keys.
    """
    STATUS_CHOICES = [
        ('ativo', 'Ativo'),
        ('inativo', 'Inativo'),
        ('pendente', 'Pendente'),
    ]
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=64, default='Usuário')
    permissions = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='ativo', db_index=True)

    class Meta:
        db_table = 'users'

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """A person followed through the intake-to-enrollment journey.

    ``status_jornada`` must only be changed through
    :func:`casework.services.journey.transition_status` so that every
    change leaves a history row behind.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    # Filtro frequente nas telas de acompanhamento
    status_jornada = models.CharField(
        max_length=32, choices=JOURNEY_STATUS_CHOICES, default=DEFAULT_JOURNEY_STATUS, db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'patients'

    def __str__(self) -> str:
        return f"{self.name} [{self.status_jornada}]"


class StatusHistoryRecord(models.Model):
    """One journey status change of a patient.

    Rows are append-only.  The very first row of a patient (its "birth"
    row) has ``status_anterior`` set to ``None``.  Older databases may
    lack the ``motivo`` column; see :mod:`casework.services.schema`.
    """
    assistido = models.ForeignKey(
        Patient, on_delete=models.CASCADE, related_name='status_history', db_column='assistido_id'
    )
    status_anterior = models.CharField(max_length=32, null=True, blank=True)
    status_novo = models.CharField(max_length=32)
    changed_by = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name='status_changes', db_column='changed_by'
    )
    motivo = models.TextField(null=True, blank=True)
    changed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'assistido_status_history'
        indexes = [
            models.Index(fields=['assistido', 'changed_at'], name='status_history_patient_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('status history rows are append-only')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError('status history rows are append-only')

    def __str__(self) -> str:
        return f"{self.assistido_id}: {self.status_anterior} → {self.status_novo}"


class SocialInterview(models.Model):
    """Social interview held with a patient; saving one moves the journey."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='social_interviews')
    interview_date = models.DateField()
    assistente_social = models.CharField(max_length=255, null=True, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(
        User, null=True, on_delete=models.SET_NULL, related_name='social_interviews', db_column='created_by'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'social_interviews'

    def __str__(self) -> str:
        return f"Interview {self.id} ({self.patient_id} @ {self.interview_date})"


class VagaDecision(models.Model):
    DECISION_CHOICES = [
        ('aprovado', 'Aprovado'),
        ('encaminhado', 'Encaminhado'),
    ]
    assistido = models.ForeignKey(
        Patient, on_delete=models.CASCADE, related_name='vaga_decisions', db_column='assistido_id'
    )
    decisao = models.CharField(max_length=16, choices=DECISION_CHOICES)
    justificativa = models.TextField()
    decided_by = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name='vaga_decisions', db_column='decided_by'
    )
    decided_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'assistido_vaga_decisions'

    def __str__(self) -> str:
        return f"{self.assistido_id}: {self.decisao}"


class Professional(models.Model):
    """Staff record that may be linked to at most one login account.

    The link column is ``user_id``.  Legacy databases expose it as
    ``user_id_int`` instead; link writes therefore go through
    :mod:`casework.services.links`, which resolves the actual column.
    """
    STATUS_CHOICES = [
        ('ATIVO', 'Ativo'),
        ('INATIVO', 'Inativo'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='professional', db_column='user_id'
    )
    email = models.EmailField(null=True, blank=True, db_index=True)
    funcao = models.CharField(max_length=128, blank=True)
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default='ATIVO')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'professionals'

    def __str__(self) -> str:
        return f"{self.funcao or 'Profissional'} ({self.id})"


class LinkRequest(models.Model):
    """A user's request to be linked to a professional record.

    Only one pending request may exist per user and per professional;
    the partial unique constraints below turn a race between two
    submissions into an integrity error instead of a silent duplicate.
    """
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_APPROVED, 'approved'),
        (STATUS_REJECTED, 'rejected'),
    )

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='link_requests')
    professional = models.ForeignKey(Professional, on_delete=models.CASCADE, related_name='link_requests')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(null=True, blank=True)
    decided_at = models.DateTimeField(null=True, blank=True)
    decided_by_user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='decided_link_requests'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'professional_link_requests'
        constraints = [
            models.UniqueConstraint(
                fields=['user'],
                condition=models.Q(status='pending'),
                name='link_requests_one_pending_per_user',
            ),
            models.UniqueConstraint(
                fields=['professional'],
                condition=models.Q(status='pending'),
                name='link_requests_one_pending_per_professional',
            ),
        ]

    @property
    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING

    def __str__(self) -> str:
        return f"link request {self.id} u={self.user_id} p={self.professional_id} [{self.status}]"


class SystemSettings(models.Model):
    """Installation-wide access policy (single row, pk=1).

    Every column has a safe default and readers go through
    :mod:`casework.services.access_settings`, which normalises values and
    derives ``allow_public_registration`` from ``registration_mode``.
    """
    registration_mode = models.CharField(max_length=32, default='INVITE_ONLY')
    public_signup_default_status = models.CharField(max_length=16, default='pendente')
    link_policy = models.CharField(max_length=32, default='MANUAL_LINK_ADMIN')
    allow_create_user_from_professional = models.BooleanField(default=True)
    block_duplicate_email = models.BooleanField(default=True)
    allow_public_registration = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'system_settings'

    def __str__(self) -> str:
        return f"settings({self.registration_mode}, {self.link_policy})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_events'
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}/{self.object_id}"
