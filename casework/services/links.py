"""
Professional-to-account linking.

Two workflows share this module.  Under ``MANUAL_LINK_ADMIN`` an
administrator links and unlinks accounts directly.  Under
``SELF_CLAIM_WITH_APPROVAL`` a user files a link request for a
professional record and an administrator approves or rejects it.
``AUTO_LINK_BY_EMAIL`` lets a user claim the one unlinked professional
whose e-mail matches their own.

Every mutating operation runs in one transaction and locks rows in a
fixed order: professional, then user, then request.  The professional's
link column is read and written with raw SQL because its name differs
between schema generations (see :mod:`casework.services.schema`).  The
link write is guarded by ``IS NULL`` so a concurrent approval for the
same professional fails loudly instead of overwriting the winner.
"""
from __future__ import annotations

import uuid
from typing import List, NamedTuple, Optional

import structlog
from django.contrib.auth import get_user_model
from django.db import IntegrityError, connection, transaction
from django.db.models import Q
from django.utils import timezone

from casework.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    classify_integrity_error,
)
from casework.models import LinkRequest, Professional
from casework.services import access_settings, schema
from casework.services.audit import log_action
from casework.services.authorization import Principal
from casework.services.journey import normalize_user_id

User = get_user_model()
log = structlog.get_logger(__name__)

REQUEST_STATUSES = (LinkRequest.STATUS_PENDING, LinkRequest.STATUS_APPROVED, LinkRequest.STATUS_REJECTED)


class ProfessionalState(NamedTuple):
    id: uuid.UUID
    linked_user_id: Optional[int]


# -----------------------------------------------------------------------------
# Row access
# -----------------------------------------------------------------------------
def _qn(name: str) -> str:
    return connection.ops.quote_name(name)


def _pk_param(pk: uuid.UUID):
    return Professional._meta.pk.get_db_prep_value(pk, connection)


def _same_user(linked, user_id) -> bool:
    return linked is not None and str(linked) == str(user_id)


def _professional_pk(professional_id) -> uuid.UUID:
    try:
        return uuid.UUID(str(professional_id).strip())
    except (TypeError, ValueError):
        raise NotFoundError('Profissional não encontrado.', 'NOT_FOUND')


def _lock_professional(pk: uuid.UUID) -> ProfessionalState:
    column = schema.link_column_name()
    sql = 'SELECT {}, {} FROM {} WHERE {} = %s'.format(
        _qn('id'), _qn(column), _qn(Professional._meta.db_table), _qn('id')
    )
    if connection.features.has_select_for_update:
        sql += ' FOR UPDATE'
    with connection.cursor() as cursor:
        cursor.execute(sql, [_pk_param(pk)])
        row = cursor.fetchone()
    if row is None:
        raise NotFoundError('Profissional não encontrado.', 'NOT_FOUND')
    return ProfessionalState(pk, row[1])


def _lock_user(user_id) -> User:
    user = User.objects.select_for_update().filter(pk=user_id).first()
    if user is None:
        raise NotFoundError('Usuário não encontrado.', 'NOT_FOUND')
    return user


def _professional_linked_to(user_id, exclude: Optional[uuid.UUID] = None) -> Optional[str]:
    column = schema.link_column_name()
    sql = 'SELECT {} FROM {} WHERE {} = %s'.format(_qn('id'), _qn(Professional._meta.db_table), _qn(column))
    params = [user_id]
    if exclude is not None:
        sql += ' AND {} <> %s'.format(_qn('id'))
        params.append(_pk_param(exclude))
    with connection.cursor() as cursor:
        cursor.execute(sql, params)
        row = cursor.fetchone()
    return str(row[0]) if row else None


def _write_link(pk: uuid.UUID, user_id: Optional[int]) -> int:
    """Set or clear the link column; setting only succeeds on an unlinked row."""
    column = _qn(schema.link_column_name())
    now = Professional._meta.get_field('updated_at').get_db_prep_save(timezone.now(), connection=connection)
    sql = 'UPDATE {} SET {} = %s, {} = %s WHERE {} = %s'.format(
        _qn(Professional._meta.db_table), column, _qn('updated_at'), _qn('id')
    )
    if user_id is not None:
        sql += ' AND {} IS NULL'.format(column)
    with connection.cursor() as cursor:
        cursor.execute(sql, [user_id, now, _pk_param(pk)])
        return cursor.rowcount


def _ensure_free(state: ProfessionalState, user_id) -> None:
    if state.linked_user_id is not None and not _same_user(state.linked_user_id, user_id):
        raise ConflictError('Profissional já vinculado a outro usuário.', 'ALREADY_LINKED_ELSEWHERE')
    if _professional_linked_to(user_id, exclude=state.id):
        raise ConflictError('Usuário já vinculado a outro profissional.', 'ALREADY_LINKED_ELSEWHERE')


def _link(state: ProfessionalState, user_id) -> bool:
    if _same_user(state.linked_user_id, user_id):
        return False
    if _write_link(state.id, user_id) != 1:
        raise ConflictError(
            'O profissional foi vinculado por outra operação concorrente.', 'CONCURRENT_LINK_LOST_RACE'
        )
    return True


# -----------------------------------------------------------------------------
# Gates
# -----------------------------------------------------------------------------
def _principal(acting_user) -> Principal:
    principal = Principal.from_user(acting_user)
    if not principal.is_authenticated:
        raise AuthenticationError()
    return principal


def _require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise AuthorizationError('Apenas administradores podem executar esta ação.', 'FORBIDDEN_NOT_ADMIN')


def _require_policy(policy: str) -> None:
    current = access_settings.read_access_settings().link_policy
    if current != policy:
        raise AuthorizationError(
            'Funcionalidade desativada pela política de vínculo atual.', 'POLICY_DISABLED'
        )


def _require_direct_link_allowed(principal: Principal) -> None:
    policy = access_settings.read_access_settings().link_policy
    if policy == access_settings.MANUAL_LINK_ADMIN and not principal.is_admin:
        raise AuthorizationError('Apenas administradores podem vincular usuários.', 'FORBIDDEN_NOT_ADMIN')


def _require_adjudicator(principal: Principal) -> None:
    _require_admin(principal)
    _require_policy(access_settings.SELF_CLAIM_WITH_APPROVAL)


def _request_pk(request_id) -> int:
    pk = normalize_user_id(request_id)
    if pk is None:
        raise NotFoundError('Solicitação não encontrada.', 'NOT_FOUND')
    return pk


# -----------------------------------------------------------------------------
# Direct link / unlink
# -----------------------------------------------------------------------------
def direct_link(professional_id, user_id, acting_user) -> dict:
    principal = _principal(acting_user)
    _require_direct_link_allowed(principal)
    pk = _professional_pk(professional_id)
    target = normalize_user_id(user_id)
    if target is None:
        raise ValidationError('user_id inválido.', 'INVALID_USER')

    try:
        with transaction.atomic():
            state = _lock_professional(pk)
            user = _lock_user(target)
            _ensure_free(state, user.pk)
            changed = _link(state, user.pk)
            if changed:
                log_action(user=acting_user, action='professional.link', object_type='professional',
                           object_id=pk, detail={'user_id': user.pk})
    except IntegrityError as exc:
        raise classify_integrity_error(exc) from exc

    log.info('links.direct_link', professional_id=str(pk), user_id=target, changed=changed, actor=principal.user_id)
    return {'professional_id': str(pk), 'user_id': target, 'changed': changed}


def direct_unlink(professional_id, acting_user) -> dict:
    principal = _principal(acting_user)
    _require_direct_link_allowed(principal)
    pk = _professional_pk(professional_id)

    with transaction.atomic():
        state = _lock_professional(pk)
        if state.linked_user_id is None:
            changed = False
        else:
            _write_link(pk, None)
            changed = True
            log_action(user=acting_user, action='professional.unlink', object_type='professional',
                       object_id=pk, detail={'previous_user_id': state.linked_user_id})

    log.info('links.direct_unlink', professional_id=str(pk), changed=changed, actor=principal.user_id)
    return {'professional_id': str(pk), 'user_id': None, 'changed': changed}


# -----------------------------------------------------------------------------
# Link requests
# -----------------------------------------------------------------------------
def create_link_request(professional_id, requester, notes: Optional[str] = None) -> LinkRequest:
    principal = _principal(requester)
    _require_policy(access_settings.SELF_CLAIM_WITH_APPROVAL)
    pk = _professional_pk(professional_id)

    try:
        with transaction.atomic():
            state = _lock_professional(pk)
            user = _lock_user(principal.user_id)
            if _same_user(state.linked_user_id, user.pk):
                raise ConflictError('Você já está vinculado a este profissional.', 'ALREADY_LINKED')
            _ensure_free(state, user.pk)
            pending = LinkRequest.objects.filter(status=LinkRequest.STATUS_PENDING).filter(
                Q(user_id=user.pk) | Q(professional_id=pk)
            )
            if pending.exists():
                raise ConflictError('Já existe uma solicitação pendente.', 'PENDING_REQUEST_EXISTS')
            link_request = LinkRequest.objects.create(user=user, professional_id=pk, notes=notes or None)
            log_action(user=user, action='link_request.create', object_type='link_request',
                       object_id=link_request.pk, detail={'professional_id': str(pk)})
    except IntegrityError as exc:
        raise classify_integrity_error(exc) from exc

    log.info('links.request_created', request_id=link_request.pk, professional_id=str(pk), user_id=user.pk)
    return link_request


def list_link_requests(acting_user, status: Optional[str] = None) -> List[LinkRequest]:
    _require_adjudicator(_principal(acting_user))
    qs = LinkRequest.objects.select_related('user', 'decided_by_user').order_by('-created_at', '-id')
    if status:
        status = str(status).strip().lower()
        if status not in REQUEST_STATUSES:
            raise ValidationError('status inválido.', 'INVALID_STATUS')
        qs = qs.filter(status=status)
    return list(qs)


def _decide(link_request: LinkRequest, status: str, acting_user, notes: Optional[str]) -> None:
    link_request.status = status
    link_request.decided_at = timezone.now()
    link_request.decided_by_user = acting_user
    if notes:
        link_request.notes = notes
    link_request.save(update_fields=['status', 'decided_at', 'decided_by_user', 'notes', 'updated_at'])


def approve_link_request(request_id, acting_user, notes: Optional[str] = None) -> LinkRequest:
    principal = _principal(acting_user)
    _require_adjudicator(principal)
    rid = _request_pk(request_id)

    try:
        with transaction.atomic():
            snapshot = LinkRequest.objects.filter(pk=rid).values('user_id', 'professional_id').first()
            if snapshot is None:
                raise NotFoundError('Solicitação não encontrada.', 'NOT_FOUND')
            state = _lock_professional(snapshot['professional_id'])
            user = _lock_user(snapshot['user_id'])
            link_request = LinkRequest.objects.select_for_update().filter(pk=rid).first()
            if link_request is None:
                raise NotFoundError('Solicitação não encontrada.', 'NOT_FOUND')
            if not link_request.is_pending:
                raise ConflictError('Solicitação já decidida.', 'ALREADY_DECIDED')
            # state may have drifted since the request was filed
            if _same_user(state.linked_user_id, user.pk):
                raise ConflictError('Usuário já vinculado a este profissional.', 'ALREADY_LINKED')
            _ensure_free(state, user.pk)
            linked = _link(state, user.pk)
            _decide(link_request, LinkRequest.STATUS_APPROVED, acting_user, notes)
            log_action(user=acting_user, action='link_request.approve', object_type='link_request',
                       object_id=rid, detail={'professional_id': str(state.id), 'user_id': user.pk})
    except IntegrityError as exc:
        raise classify_integrity_error(exc) from exc

    log.info('links.request_approved', request_id=rid, professional_id=str(state.id),
             user_id=user.pk, linked=linked, actor=principal.user_id)
    return link_request


def reject_link_request(request_id, acting_user, notes: Optional[str] = None) -> LinkRequest:
    principal = _principal(acting_user)
    _require_adjudicator(principal)
    rid = _request_pk(request_id)

    with transaction.atomic():
        link_request = LinkRequest.objects.select_for_update().filter(pk=rid).first()
        if link_request is None:
            raise NotFoundError('Solicitação não encontrada.', 'NOT_FOUND')
        if not link_request.is_pending:
            raise ConflictError('Solicitação já decidida.', 'ALREADY_DECIDED')
        _decide(link_request, LinkRequest.STATUS_REJECTED, acting_user, notes)
        log_action(user=acting_user, action='link_request.reject', object_type='link_request',
                   object_id=rid, detail={'professional_id': str(link_request.professional_id)})

    log.info('links.request_rejected', request_id=rid, actor=principal.user_id)
    return link_request


# -----------------------------------------------------------------------------
# Auto link
# -----------------------------------------------------------------------------
def auto_link_by_email(user) -> dict:
    """Link ``user`` to the single active, unlinked professional sharing its e-mail."""
    principal = _principal(user)
    _require_policy(access_settings.AUTO_LINK_BY_EMAIL)
    email = (getattr(user, 'email', '') or '').strip()
    if not email:
        raise ValidationError('Usuário sem e-mail cadastrado.', 'EMAIL_REQUIRED')

    try:
        with transaction.atomic():
            candidate_ids = sorted(
                Professional.objects.filter(email__iexact=email, status='ATIVO').values_list('id', flat=True),
                key=str,
            )
            states = [_lock_professional(pk) for pk in candidate_ids]
            account = _lock_user(principal.user_id)
            for state in states:
                if _same_user(state.linked_user_id, account.pk):
                    return {'professional_id': str(state.id), 'user_id': account.pk, 'changed': False}
            if _professional_linked_to(account.pk):
                raise ConflictError('Usuário já vinculado a outro profissional.', 'ALREADY_LINKED_ELSEWHERE')
            free = [state for state in states if state.linked_user_id is None]
            if not free:
                raise NotFoundError('Nenhum profissional disponível com este e-mail.', 'AUTO_LINK_NO_MATCH')
            if len(free) > 1:
                raise ConflictError('Mais de um profissional com este e-mail.', 'AUTO_LINK_AMBIGUOUS')
            state = free[0]
            _link(state, account.pk)
            log_action(user=account, action='professional.auto_link', object_type='professional',
                       object_id=state.id, detail={'email': email})
    except IntegrityError as exc:
        raise classify_integrity_error(exc) from exc

    log.info('links.auto_link', professional_id=str(state.id), user_id=account.pk)
    return {'professional_id': str(state.id), 'user_id': account.pk, 'changed': True}
