"""
Installation-wide access policy.

The policy lives in the single ``system_settings`` row (pk=1).  Reads
go through the Django cache and every value is normalised, so callers
always get a complete :class:`AccessSettings` even if the row was
written by hand or by an older release.  If the row cannot be read at
all the defaults are returned and a warning is logged.
"""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Optional

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction

from casework.models import SystemSettings
from casework.services import schema

log = structlog.get_logger(__name__)

REGISTRATION_MODES = ('ADMIN_ONLY', 'PUBLIC_SIGNUP', 'INVITE_ONLY')
PUBLIC_SIGNUP_DEFAULT_STATUSES = ('pendente', 'ativo')
LINK_POLICIES = ('MANUAL_LINK_ADMIN', 'AUTO_LINK_BY_EMAIL', 'SELF_CLAIM_WITH_APPROVAL')

MANUAL_LINK_ADMIN = 'MANUAL_LINK_ADMIN'
AUTO_LINK_BY_EMAIL = 'AUTO_LINK_BY_EMAIL'
SELF_CLAIM_WITH_APPROVAL = 'SELF_CLAIM_WITH_APPROVAL'

SETTINGS_PK = 1
CACHE_KEY = 'casework:access-settings:v1'

STORED_FIELDS = (
    'registration_mode',
    'public_signup_default_status',
    'link_policy',
    'allow_create_user_from_professional',
    'block_duplicate_email',
    'allow_public_registration',
)
EDITABLE_FIELDS = STORED_FIELDS[:-1]


@dataclass(frozen=True)
class AccessSettings:
    registration_mode: str = 'INVITE_ONLY'
    public_signup_default_status: str = 'pendente'
    link_policy: str = MANUAL_LINK_ADMIN
    allow_create_user_from_professional: bool = True
    block_duplicate_email: bool = True
    allow_public_registration: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


DEFAULT_ACCESS_SETTINGS = AccessSettings()


def _choice(value, allowed, default, upper=True) -> str:
    text = str(value or '').strip()
    text = text.upper() if upper else text.lower()
    return text if text in allowed else default


def normalize_registration_mode(value) -> str:
    return _choice(value, REGISTRATION_MODES, DEFAULT_ACCESS_SETTINGS.registration_mode)


def normalize_public_signup_default_status(value) -> str:
    return _choice(
        value, PUBLIC_SIGNUP_DEFAULT_STATUSES, DEFAULT_ACCESS_SETTINGS.public_signup_default_status, upper=False
    )


def normalize_link_policy(value) -> str:
    return _choice(value, LINK_POLICIES, DEFAULT_ACCESS_SETTINGS.link_policy)


def _bool(value, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def normalize_access_settings(raw: Optional[dict] = None) -> AccessSettings:
    """Build a complete ``AccessSettings`` from a possibly partial row.

    ``allow_public_registration`` is always derived from the
    registration mode; a legacy row that only has the flag set is read
    as ``PUBLIC_SIGNUP``.
    """
    raw = raw or {}
    mode = raw.get('registration_mode') or ('PUBLIC_SIGNUP' if raw.get('allow_public_registration') is True else None)
    registration_mode = normalize_registration_mode(mode)
    return AccessSettings(
        registration_mode=registration_mode,
        public_signup_default_status=normalize_public_signup_default_status(raw.get('public_signup_default_status')),
        link_policy=normalize_link_policy(raw.get('link_policy')),
        allow_create_user_from_professional=_bool(
            raw.get('allow_create_user_from_professional'),
            DEFAULT_ACCESS_SETTINGS.allow_create_user_from_professional,
        ),
        block_duplicate_email=_bool(raw.get('block_duplicate_email'), DEFAULT_ACCESS_SETTINGS.block_duplicate_email),
        allow_public_registration=registration_mode == 'PUBLIC_SIGNUP',
    )


_create_lock = threading.Lock()


def ensure_settings_row(using: Optional[str] = None) -> SystemSettings:
    """Return the singleton row, creating it once if it is missing.

    Concurrent creators in this process queue on a lock; creators in
    other processes are covered by ``get_or_create`` retrying the read
    after a unique violation.
    """
    using = using or DEFAULT_DB_ALIAS
    row = SystemSettings.objects.using(using).filter(pk=SETTINGS_PK).first()
    if row is not None:
        return row
    with _create_lock:
        try:
            row, created = SystemSettings.objects.using(using).get_or_create(pk=SETTINGS_PK)
        except IntegrityError:
            row, created = SystemSettings.objects.using(using).get(pk=SETTINGS_PK), False
    if created:
        log.info('access_settings.created', alias=using)
    return row


def _read_row(using: str) -> dict:
    with transaction.atomic(using=using):
        available = schema.table_columns(SystemSettings._meta.db_table, using)
        columns = [name for name in STORED_FIELDS if name in available]
        if not columns:
            return {}
        if not SystemSettings.objects.using(using).filter(pk=SETTINGS_PK).exists():
            ensure_settings_row(using)
        return SystemSettings.objects.using(using).filter(pk=SETTINGS_PK).values(*columns).first() or {}


def _cache_ttl() -> int:
    return int(getattr(settings, 'ACCESS_SETTINGS_CACHE_TTL', 60))


def read_access_settings(using: Optional[str] = None, use_cache: bool = True) -> AccessSettings:
    using = using or DEFAULT_DB_ALIAS
    key = f'{CACHE_KEY}:{using}'
    if use_cache:
        cached = cache.get(key)
        if cached is not None:
            return normalize_access_settings(cached)
    try:
        current = normalize_access_settings(_read_row(using))
    except DatabaseError as exc:
        log.warning('access_settings.degraded', alias=using, error=str(exc))
        return DEFAULT_ACCESS_SETTINGS
    cache.set(key, current.as_dict(), _cache_ttl())
    return current


def invalidate_cache(using: Optional[str] = None) -> None:
    cache.delete(f'{CACHE_KEY}:{using or DEFAULT_DB_ALIAS}')


def update_access_settings(changes: dict, using: Optional[str] = None) -> AccessSettings:
    """Persist the given editable fields and return the normalised result.

    Unknown keys are ignored.  Values are normalised before they are
    written, so the stored row never holds an out-of-range value.
    """
    using = using or DEFAULT_DB_ALIAS
    changes = {k: v for k, v in (changes or {}).items() if k in EDITABLE_FIELDS}
    with transaction.atomic(using=using):
        row = ensure_settings_row(using)
        row = SystemSettings.objects.using(using).select_for_update().get(pk=row.pk)
        current = normalize_access_settings({name: getattr(row, name) for name in STORED_FIELDS})
        merged = normalize_access_settings({**current.as_dict(), **changes})
        for name in STORED_FIELDS:
            setattr(row, name, getattr(merged, name))
        row.save(using=using)
    invalidate_cache(using)
    log.info('access_settings.updated', alias=using, fields=sorted(changes))
    return merged
