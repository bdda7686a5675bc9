from casework.services.authorization import (
    Principal,
    Scope,
    authorize,
    authorize_any,
    is_admin,
    normalize_permission_entries,
    normalize_role,
)


def test_role_aliases_map_to_canonical_roles():
    assert normalize_role('Coordenador Geral') == 'ADM'
    assert normalize_role('  gestão ') == 'ADM'
    assert normalize_role('Administrador') == 'ADM'
    assert normalize_role('Usuário') == 'USUARIO'
    assert normalize_role('user') == 'USUARIO'
    assert normalize_role('Consulta') == 'CONSULTA'


def test_unknown_role_is_upper_cased_and_has_no_policy():
    assert normalize_role('Recepção') == 'RECEPÇÃO'
    assert normalize_role(None) == ''
    assert not authorize('Recepção', [], 'profissionais', 'view')


def test_permission_entries_accept_strings_and_objects():
    scopes = normalize_permission_entries([
        'Pacientes:Create',
        {'module': 'profissionais', 'action': 'edit'},
        {'module': 'configuracoes', 'permission': 'edit'},
    ])
    assert scopes == (
        Scope('pacientes', 'create'),
        Scope('profissionais', 'edit'),
        Scope('configuracoes', 'edit'),
    )


def test_malformed_permission_entries_are_dropped():
    scopes = normalize_permission_entries(['a:b:c', 'semdoispontos', ':view', 42, {'module': 'x'}, None])
    assert scopes == ()
    assert normalize_permission_entries(None) == ()


def test_usuario_policy_is_view_only():
    assert authorize('Usuário', [], 'profissionais', 'view')
    assert authorize('Usuário', [], 'configuracoes', 'view')
    assert not authorize('Usuário', [], 'profissionais', 'edit')
    assert not authorize('Consulta', [], 'pacientes', 'view')


def test_admin_role_is_allowed_everything():
    assert authorize('admin', [], 'pacientes', 'delete')
    assert authorize('Gestor', None, 'qualquer', 'coisa')


def test_scopes_extend_role_with_wildcards():
    assert authorize('Usuário', ['profissionais:edit'], 'profissionais', 'edit')
    assert authorize('Usuário', ['pacientes:*'], 'pacientes', 'edit')
    assert authorize('Usuário', ['*:create'], 'pacientes', 'create')
    assert not authorize('Usuário', ['pacientes:*'], 'profissionais', 'edit')


def test_empty_target_is_denied():
    assert not authorize('admin', [], '', 'view')
    assert not authorize('admin', [], 'pacientes', '  ')


def test_authorize_any():
    targets = [('profissionais', 'edit'), ('profissionais', 'view')]
    assert authorize_any('Usuário', [], targets)
    assert not authorize_any('Recepção', [], targets)


def test_is_admin_by_role_or_scope():
    assert is_admin('ADM', [])
    assert is_admin('Usuário', ['admin'])
    assert is_admin('Usuário', ['admin:all'])
    assert is_admin('Usuário', ['manage:users'])
    assert is_admin('Usuário', [{'module': 'permissions', 'action': 'manage'}])
    assert not is_admin('Usuário', ['profissionais:edit'])
    assert not is_admin('', None)


def test_principal_from_anonymous_user_cannot_do_anything():
    principal = Principal.from_user(None)
    assert not principal.is_authenticated
    assert not principal.can('profissionais', 'view')
    assert not principal.is_admin


class _FakeUser:
    is_authenticated = True
    pk = 7
    role = 'Usuário'
    permissions = 'pacientes:create'


def test_principal_from_user_normalizes_single_entry_permissions():
    principal = Principal.from_user(_FakeUser())
    assert principal.user_id == 7
    assert principal.canonical_role == 'USUARIO'
    assert principal.scopes == (Scope('pacientes', 'create'),)
    assert principal.can('pacientes', 'create')
    assert principal.can_any([('x', 'y'), ('profissionais', 'view')])
