"""
Patient journey state machine.

``transition_status`` is the only way ``Patient.status_jornada`` changes.
Each effective change updates the patient and appends exactly one
history row in the same transaction; a transition to the current status
is a no-op.  Both entry points open ``transaction.atomic()``, so when a
view already holds a transaction (e.g. after inserting a vaga decision)
the transition runs as a savepoint inside it and commits or rolls back
together with the caller's work.
"""
from __future__ import annotations

import uuid
from typing import List, NamedTuple, Optional, Tuple

import structlog
from django.db import DEFAULT_DB_ALIAS, connections, transaction
from django.utils import timezone

from casework.exceptions import NotFoundError, ValidationError
from casework.models import DEFAULT_JOURNEY_STATUS, JOURNEY_STATUSES, Patient, StatusHistoryRecord
from casework.services import schema

log = structlog.get_logger(__name__)

INITIAL_HISTORY_REASON = 'Cadastro criado'


class TransitionResult(NamedTuple):
    previous_status: str
    new_status: str
    changed: bool


def normalize_status(value) -> str:
    return str(value or '').strip().lower()


def normalize_user_id(value) -> Optional[int]:
    """Positive integer user id, or ``None`` when ``value`` is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def _patient_pk(patient_id) -> uuid.UUID:
    text = str(patient_id or '').strip()
    if not text:
        raise ValidationError('patient_id é obrigatório.', 'INVALID_PATIENT')
    try:
        return uuid.UUID(text)
    except ValueError:
        raise ValidationError('patient_id inválido.', 'INVALID_PATIENT')


def _actor(actor_user_id) -> int:
    actor = normalize_user_id(actor_user_id)
    if actor is None:
        raise ValidationError('Usuário inválido para registrar histórico.', 'INVALID_ACTOR')
    return actor


def _lock_patient(pk: uuid.UUID, using: str) -> Patient:
    try:
        return Patient.objects.using(using).select_for_update().get(pk=pk)
    except Patient.DoesNotExist:
        raise NotFoundError('Assistido não encontrado.', 'PATIENT_NOT_FOUND')


def lock_patient(patient_id, using: Optional[str] = None) -> Patient:
    """Lock a patient row for the caller's transaction."""
    return _lock_patient(_patient_pk(patient_id), using or DEFAULT_DB_ALIAS)


def _append_history(patient: Patient, previous: Optional[str], new: str, actor: int,
                    reason, using: str) -> None:
    motivo = (str(reason).strip() if reason else '') or None
    now = timezone.now()
    if schema.has_reason_column(using):
        StatusHistoryRecord.objects.using(using).create(
            assistido_id=patient.pk,
            status_anterior=previous,
            status_novo=new,
            changed_by_id=actor,
            motivo=motivo,
            changed_at=now,
        )
        return

    # legacy table without motivo
    connection = connections[using]
    opts = StatusHistoryRecord._meta
    values = {
        'assistido': patient.pk,
        'status_anterior': previous,
        'status_novo': new,
        'changed_by': actor,
        'changed_at': now,
    }
    columns, params = [], []
    for name, value in values.items():
        field = opts.get_field(name)
        columns.append(connection.ops.quote_name(field.column))
        params.append(field.get_db_prep_save(value, connection=connection))
    sql = 'INSERT INTO {} ({}) VALUES ({})'.format(
        connection.ops.quote_name(opts.db_table), ', '.join(columns), ', '.join(['%s'] * len(columns))
    )
    with connection.cursor() as cursor:
        cursor.execute(sql, params)


def transition_status(patient_id, new_status, actor_user_id, reason=None,
                      using: Optional[str] = None) -> TransitionResult:
    pk = _patient_pk(patient_id)
    target = normalize_status(new_status)
    if target not in JOURNEY_STATUSES:
        raise ValidationError('status_jornada inválido.', 'INVALID_STATUS')
    actor = _actor(actor_user_id)
    using = using or DEFAULT_DB_ALIAS

    with transaction.atomic(using=using):
        patient = _lock_patient(pk, using)
        previous = normalize_status(patient.status_jornada)
        if previous == target:
            return TransitionResult(previous, target, False)

        patient.status_jornada = target
        patient.updated_at = timezone.now()
        patient.save(using=using, update_fields=['status_jornada', 'updated_at'])
        _append_history(patient, previous or None, target, actor, reason, using)

    log.info('journey.transition', patient_id=str(pk), previous=previous, new=target, actor=actor)
    return TransitionResult(previous, target, True)


def create_initial_history(patient_id, actor_user_id, reason=INITIAL_HISTORY_REASON,
                           using: Optional[str] = None) -> Tuple[bool, str]:
    """Seed the ``status_anterior IS NULL`` row of a patient if it is missing.

    Returns ``(inserted, status)``.  A patient with an empty status is
    recorded as ``em_fila_espera``.
    """
    pk = _patient_pk(patient_id)
    actor = _actor(actor_user_id)
    using = using or DEFAULT_DB_ALIAS

    with transaction.atomic(using=using):
        patient = _lock_patient(pk, using)
        current = normalize_status(patient.status_jornada) or DEFAULT_JOURNEY_STATUS
        seeded = StatusHistoryRecord.objects.using(using).filter(
            assistido_id=pk, status_anterior__isnull=True
        ).exists()
        if seeded:
            return False, current
        _append_history(patient, None, current, actor, reason, using)

    log.info('journey.seeded', patient_id=str(pk), status=current, actor=actor)
    return True, current


def history_for(patient_id, using: Optional[str] = None) -> List[dict]:
    """History rows of a patient, oldest first, as plain dicts."""
    pk = _patient_pk(patient_id)
    using = using or DEFAULT_DB_ALIAS
    fields = ['id', 'status_anterior', 'status_novo', 'changed_by', 'changed_at']
    if schema.has_reason_column(using):
        fields.insert(4, 'motivo')
    rows = (
        StatusHistoryRecord.objects.using(using)
        .filter(assistido_id=pk)
        .order_by('changed_at', 'id')
        .values(*fields)
    )
    return [{'motivo': None, **row} for row in rows]
