from unittest.mock import patch

import pytest

from auth import OAuth2Server
from exceptions import InvalidStorageError
from models import AuthorizationCode
from storage import (
    AccessTokenStorage, ClientCredentialsStorage, ClientStorage, MemoryStorage, RefreshTokenStorage, STORAGE_ROLES,
    implemented_roles,
)


class TokenOnlyStorage(AccessTokenStorage):
    def save_access_token(self, token, client_id, user_id):
        return None


def test_implemented_roles():
    assert implemented_roles(MemoryStorage()) == list(STORAGE_ROLES)
    assert implemented_roles(TokenOnlyStorage()) == ['access_token']
    assert implemented_roles(object()) == []


def test_client_secret_is_hashed(memory_storage):
    client = memory_storage.add_client('client-1', 'secret', grant_types=['client_credentials'])

    assert client.client_secret != 'secret'
    assert memory_storage.get_client('client-1') is client
    assert client.check_client_secret('secret')
    assert not client.check_client_secret('wrong')


def test_public_client_never_matches_a_secret(memory_storage):
    client = memory_storage.add_client('client-1')

    assert not client.check_client_secret('anything')


def test_unknown_client(memory_storage):
    assert memory_storage.get_client('nobody') is None


def test_user_credentials(memory_storage):
    memory_storage.add_user('alice', 'wonderland')

    assert memory_storage.check_user_credentials('alice', 'wonderland')
    assert not memory_storage.check_user_credentials('alice', 'looking-glass')
    assert not memory_storage.check_user_credentials('bob', 'wonderland')


def test_saved_token_is_indexed_by_refresh_token(memory_storage):
    token = {'access_token': 'at-1', 'refresh_token': 'rt-1', 'expires_in': 60, 'scope': 'profile'}

    record = memory_storage.save_access_token(token, 'client-1', 'alice')

    assert memory_storage.tokens['at-1'] is record
    assert memory_storage.get_refresh_token('rt-1') is record
    assert (record.client_id, record.user_id, record.get_scope()) == ('client-1', 'alice', 'profile')


def test_unset_refresh_token(memory_storage):
    record = memory_storage.save_access_token({'access_token': 'at-1', 'refresh_token': 'rt-1'}, 'client-1', None)

    memory_storage.unset_refresh_token('rt-1')

    assert memory_storage.get_refresh_token('rt-1') is None
    assert record.is_revoked()


def test_authorization_code_is_bound_to_its_client(memory_storage):
    code = AuthorizationCode('code-1', 'client-1', 'https://client.example.com/cb', 'profile', 'alice')
    memory_storage.set_authorization_code(code)

    assert memory_storage.get_authorization_code('code-1', 'client-1') is code
    assert memory_storage.get_authorization_code('code-1', 'client-2') is None


def test_expired_authorization_code_is_dropped(memory_storage):
    code = AuthorizationCode('code-1', 'client-1', None, 'profile', 'alice', auth_time=1000)
    memory_storage.set_authorization_code(code)

    with patch('models.time.time', return_value=1000 + AuthorizationCode.EXPIRES_IN + 1):
        assert memory_storage.get_authorization_code('code-1', 'client-1') is None

    assert 'code-1' not in memory_storage.authorization_codes


def test_expire_authorization_code(memory_storage):
    memory_storage.set_authorization_code(AuthorizationCode('code-1', 'client-1', None, '', 'alice'))

    memory_storage.expire_authorization_code('code-1')
    memory_storage.expire_authorization_code('code-1')

    assert memory_storage.get_authorization_code('code-1', 'client-1') is None


def test_client_key_falls_back_to_any_subject(memory_storage):
    memory_storage.set_client_key('client-1', 'shared-key')
    memory_storage.set_client_key('client-1', 'alice-key', subject='alice')

    assert memory_storage.get_client_key('client-1', 'alice') == 'alice-key'
    assert memory_storage.get_client_key('client-1', 'bob') == 'shared-key'
    assert memory_storage.get_client_key('client-2', 'alice') is None


def test_roles_are_distinct_interfaces():
    assert not issubclass(RefreshTokenStorage, ClientCredentialsStorage)
    assert isinstance(MemoryStorage(), RefreshTokenStorage)


class ClientLookupStorage(ClientStorage):
    def get_client(self, client_id):
        return None


class ConfidentialClientStorage(ClientCredentialsStorage):
    def get_client(self, client_id):
        return None


def test_client_credentials_extends_client_role():
    assert issubclass(ClientCredentialsStorage, ClientStorage)
    assert implemented_roles(ConfidentialClientStorage()) == ['client_credentials', 'client']
    assert implemented_roles(ClientLookupStorage()) == ['client']


def test_client_lookup_cannot_serve_client_credentials():
    with pytest.raises(InvalidStorageError) as exc_info:
        OAuth2Server({'client_credentials': ClientLookupStorage()})

    assert exc_info.value.role == 'client_credentials'
