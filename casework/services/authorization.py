"""
Role and scope based authorization decisions.

Everything here is pure: callers pass the actor's role and raw
permission entries (as stored on the user) and get a boolean back.
Roles are free text in the database, so they are first mapped onto a
small set of canonical roles, each of which carries a module/action
policy.  Permission entries grant extra ``(module, action)`` scopes on
top of the role; ``*`` acts as a wildcard on either side.
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional, Sequence, Tuple

WILDCARD = '*'

ROLE_ALIASES = {
    'adm': 'ADM',
    'admin': 'ADM',
    'administrador': 'ADM',
    'coordenador geral': 'ADM',
    'gestao': 'ADM',
    'gestão': 'ADM',
    'gestor': 'ADM',
    'usuario': 'USUARIO',
    'usuário': 'USUARIO',
    'user': 'USUARIO',
    'consulta': 'CONSULTA',
}

ROLE_POLICIES = {
    'ADM': {WILDCARD: [WILDCARD]},
    'USUARIO': {
        'profissionais': ['view'],
        'configuracoes': ['view'],
    },
    'CONSULTA': {
        'profissionais': ['view'],
        'configuracoes': ['view'],
    },
}

ADMIN_ROLE = 'ADM'
ADMIN_SCOPES = frozenset({
    ('admin', 'all'),
    ('admin', WILDCARD),
    ('permissions', 'manage'),
    ('manage', 'permissions'),
    ('users', 'manage'),
    ('manage', 'users'),
})


class Scope(NamedTuple):
    module: str
    action: str


def _clean(value) -> str:
    if value is None:
        return ''
    return unicodedata.normalize('NFC', str(value)).strip().lower()


def normalize_role(role) -> str:
    """Map a stored role onto its canonical name.

    Unknown roles are returned trimmed and upper-cased so that they
    never accidentally match a canonical policy by case alone.
    """
    key = ' '.join(_clean(role).split())
    if not key:
        return ''
    return ROLE_ALIASES.get(key, key.upper())


def normalize_permission_entries(entries) -> Tuple[Scope, ...]:
    """Turn stored permission entries into ``Scope`` tuples.

    Accepts ``"module:action"`` strings and mappings with ``module`` plus
    ``action`` (or ``permission``).  Anything else, including strings
    without exactly one colon, is dropped.
    """
    if not entries:
        return ()
    if isinstance(entries, (str, dict)):
        entries = [entries]
    scopes = []
    for entry in entries:
        if isinstance(entry, str):
            parts = entry.split(':')
            if len(parts) != 2:
                continue
            module, action = _clean(parts[0]), _clean(parts[1])
        elif isinstance(entry, dict):
            module = _clean(entry.get('module'))
            action = _clean(entry.get('action') or entry.get('permission'))
        else:
            continue
        if module and action:
            scopes.append(Scope(module, action))
    return tuple(scopes)


def _role_allows(role: str, module: str, action: str) -> bool:
    policy = ROLE_POLICIES.get(role)
    if not policy:
        return False
    for policy_module in (module, WILDCARD):
        actions = policy.get(policy_module) or ()
        if action in actions or WILDCARD in actions:
            return True
    return False


def _scope_allows(scopes: Iterable[Scope], module: str, action: str) -> bool:
    for scope in scopes:
        if scope.module in (module, WILDCARD) and scope.action in (action, WILDCARD):
            return True
    return False


def authorize(role, permissions, module: str, action: str) -> bool:
    module, action = _clean(module), _clean(action)
    if not module or not action:
        return False
    if _role_allows(normalize_role(role), module, action):
        return True
    return _scope_allows(normalize_permission_entries(permissions), module, action)


def authorize_any(role, permissions, targets: Sequence[Tuple[str, str]]) -> bool:
    return any(authorize(role, permissions, module, action) for module, action in targets)


def is_admin(role, permissions) -> bool:
    """Administrative actor: the ``ADM`` role or an admin-granting scope."""
    if normalize_role(role) == ADMIN_ROLE:
        return True
    raw = permissions if isinstance(permissions, (list, tuple)) else [permissions]
    if any(isinstance(entry, str) and _clean(entry) == 'admin' for entry in raw):
        return True
    return any(scope in ADMIN_SCOPES for scope in normalize_permission_entries(permissions))


@dataclass(frozen=True)
class Principal:
    """Authenticated actor as seen by the services."""
    user_id: Optional[int]
    role: str = ''
    permissions: tuple = field(default_factory=tuple)

    @classmethod
    def from_user(cls, user) -> 'Principal':
        if user is None or not getattr(user, 'is_authenticated', False):
            return cls(user_id=None)
        raw = getattr(user, 'permissions', None) or ()
        if isinstance(raw, (str, dict)):
            raw = (raw,)
        return cls(user_id=user.pk, role=getattr(user, 'role', '') or '', permissions=tuple(raw))

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def scopes(self) -> Tuple[Scope, ...]:
        return normalize_permission_entries(self.permissions)

    @property
    def canonical_role(self) -> str:
        return normalize_role(self.role)

    def can(self, module: str, action: str) -> bool:
        return self.is_authenticated and authorize(self.role, self.permissions, module, action)

    def can_any(self, targets: Sequence[Tuple[str, str]]) -> bool:
        return self.is_authenticated and authorize_any(self.role, self.permissions, targets)

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and is_admin(self.role, self.permissions)
