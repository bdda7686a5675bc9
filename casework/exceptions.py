"""
Error taxonomy and the unified DRF exception handler.

Services raise the ``APIException`` subclasses below; each carries an
HTTP status and a machine code.  ``api_exception_handler`` renders every
error, including DRF's own, as ``{"success": false, "message", "code"}``.
"""
from __future__ import annotations

import structlog
from django.db import IntegrityError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

log = structlog.get_logger(__name__)


class CaseworkError(drf_exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Erro interno.'
    default_code = 'INTERNAL_ERROR'

    def __init__(self, message: str | None = None, code: str | None = None):
        self.code = code or self.default_code
        super().__init__(detail=message or self.default_detail, code=self.code)

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(CaseworkError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Dados inválidos.'
    default_code = 'VALIDATION_ERROR'


class AuthenticationError(CaseworkError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Autenticação necessária.'
    default_code = 'UNAUTHENTICATED'


class AuthorizationError(CaseworkError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Acesso negado.'
    default_code = 'FORBIDDEN'


class NotFoundError(CaseworkError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Registro não encontrado.'
    default_code = 'NOT_FOUND'


class ConflictError(CaseworkError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflito de estado.'
    default_code = 'CONFLICT'


class InternalError(CaseworkError):
    pass


# constraint name (PostgreSQL) or column text (SQLite) -> conflict
_INTEGRITY_RULES = (
    (
        ('link_requests_one_pending_per_user', 'professional_link_requests.user_id'),
        'PENDING_REQUEST_EXISTS',
        'Já existe uma solicitação pendente para este usuário.',
    ),
    (
        ('link_requests_one_pending_per_professional', 'professional_link_requests.professional_id'),
        'PENDING_REQUEST_EXISTS',
        'Já existe uma solicitação pendente para este profissional.',
    ),
    (
        ('professionals_user_id', 'professionals.user_id'),
        'ALREADY_LINKED_ELSEWHERE',
        'Usuário já vinculado a outro profissional.',
    ),
)


def classify_integrity_error(exc: IntegrityError) -> CaseworkError:
    """Map a unique-constraint violation to the conflict it represents.

    Unknown violations become a generic ``ConflictError``.
    """
    text = str(exc)
    cause = getattr(exc, '__cause__', None)
    diag = getattr(cause, 'diag', None)
    constraint = getattr(diag, 'constraint_name', None) or ''
    for needles, code, message in _INTEGRITY_RULES:
        for needle in needles:
            if needle == constraint or needle in text:
                return ConflictError(message, code)
    return ConflictError('Violação de integridade.', 'INTEGRITY_CONFLICT')


_DRF_CODES = {
    status.HTTP_400_BAD_REQUEST: 'VALIDATION_ERROR',
    status.HTTP_401_UNAUTHORIZED: 'UNAUTHENTICATED',
    status.HTTP_403_FORBIDDEN: 'FORBIDDEN',
    status.HTTP_404_NOT_FOUND: 'NOT_FOUND',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'METHOD_NOT_ALLOWED',
    status.HTTP_409_CONFLICT: 'CONFLICT',
    status.HTTP_429_TOO_MANY_REQUESTS: 'THROTTLED',
}


def _message_from(data) -> str:
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail'])
        parts = []
        for field, errors in data.items():
            if isinstance(errors, (list, tuple)):
                errors = '; '.join(str(e) for e in errors)
            parts.append(f"{field}: {errors}")
        return ' | '.join(parts) or 'Dados inválidos.'
    if isinstance(data, (list, tuple)):
        return '; '.join(str(e) for e in data)
    return str(data)


def api_exception_handler(exc, context):
    if isinstance(exc, IntegrityError):
        exc = classify_integrity_error(exc)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view') if context else None
        log.exception('api.unhandled_error', view=getattr(view, '__name__', None) or type(view).__name__)
        return Response(
            {'success': False, 'message': 'Erro interno.', 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, CaseworkError):
        code = exc.code
        message = exc.message
    else:
        codes = exc.get_codes() if isinstance(exc, drf_exceptions.APIException) else None
        # upper-case codes come from our permission classes
        if isinstance(codes, str) and codes.isupper():
            code = codes
        else:
            code = _DRF_CODES.get(resp.status_code, 'API_ERROR')
        message = _message_from(resp.data)
    if resp.status_code >= 500:
        log.error('api.error', code=code, message=message)
    else:
        log.info('api.rejected', status=resp.status_code, code=code)
    resp.data = {'success': False, 'message': message, 'code': code}
    return resp
