import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from casework.models import Patient, Professional, User
from casework.services import access_settings, schema


@pytest.fixture(autouse=True)
def _fresh_process_state():
    # the policy cache and schema probe outlive test transactions
    cache.clear()
    schema.reset()
    yield
    cache.clear()
    schema.reset()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='coord', password='P@ssw0rd1', role='Coordenador Geral', email='coord@instituto.org'
    )


@pytest.fixture
def user_one(db):
    return User.objects.create_user(username='ana', password='P@ssw0rd1', role='Usuário', email='ana@instituto.org')


@pytest.fixture
def user_two(db):
    return User.objects.create_user(username='bruno', password='P@ssw0rd1', role='Usuário', email='bruno@instituto.org')


@pytest.fixture
def professional(db):
    return Professional.objects.create(email='ana@instituto.org', funcao='Psicóloga')


@pytest.fixture
def other_professional(db):
    return Professional.objects.create(email='carla@instituto.org', funcao='Fonoaudióloga')


@pytest.fixture
def patient(db):
    return Patient.objects.create(name='Maria Souza')


@pytest.fixture
def set_link_policy(db):
    def _set(policy):
        return access_settings.update_access_settings({'link_policy': policy})
    return _set


@pytest.fixture
def api(db):
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client
