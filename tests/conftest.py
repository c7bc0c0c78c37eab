"""
Shared fixtures for the OAuth2 server factory tests.
"""
from unittest.mock import MagicMock

import pytest

from services import ServiceLocator
from storage import MemoryStorage


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def services(memory_storage):
    """A locator knowing a single memory storage under 'storage.memory'."""
    locator = ServiceLocator()
    locator.set_service('storage.memory', memory_storage)
    return locator


@pytest.fixture
def spy_services(services):
    """Wraps the real locator so resolve calls can be asserted on."""
    spy = MagicMock(wraps=services)
    return spy


@pytest.fixture
def oauth2_config():
    return {
        'storage': 'storage.memory',
        'grant_types': {
            'client_credentials': True,
            'authorization_code': False,
            'password': False,
            'jwt': False,
            'refresh_token': False,
        },
    }
