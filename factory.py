import logging
import threading
from collections.abc import Mapping

from auth import OAuth2Server
from exceptions import ConfigurationError
from grants import AuthorizationCode, ClientCredentials, JwtBearer, RefreshToken, UserCredentials
from storage import AUTHORIZATION_CODE, CLIENT_CREDENTIALS, JWT_BEARER, REFRESH_TOKEN, USER_CREDENTIALS

logger = logging.getLogger(__name__)


def _pick(options, *names):
    return {name: options[name] for name in names if options.get(name) is not None}


def _client_credentials(server, options, audience):
    return ClientCredentials(
        server.get_storage(CLIENT_CREDENTIALS),
        _pick(options, 'allow_credentials_in_request_body')
    )


def _authorization_code(server, options, audience):
    return AuthorizationCode(server.get_storage(AUTHORIZATION_CODE))


def _user_credentials(server, options, audience):
    return UserCredentials(server.get_storage(USER_CREDENTIALS))


def _jwt_bearer(server, options, audience):
    return JwtBearer(server.get_storage(JWT_BEARER), audience)


def _refresh_token(server, options, audience):
    return RefreshToken(
        server.get_storage(REFRESH_TOKEN),
        _pick(options, 'always_issue_new_refresh_token', 'unset_refresh_token_after_use')
    )


# Attachment order is observable: a later grant wins where two overlap.
GRANT_TYPES = (
    ('client_credentials', _client_credentials),
    ('authorization_code', _authorization_code),
    ('password', _user_credentials),
    ('jwt', _jwt_bearer),
    ('refresh_token', _refresh_token),
)


class OAuth2ServerFactory:
    """Builds the :class:`auth.OAuth2Server` described by an OAuth2 config block.

    The server is assembled on the first call to :meth:`get_server` and the
    same instance is returned afterwards. Storage identifiers in the config
    are resolved through ``services`` (anything with a ``resolve(identifier)``
    method, see :class:`services.ServiceLocator`).
    """

    def __init__(self, config, services):
        self.config = dict(config)
        self.services = services
        self._server = None
        self._lock = threading.Lock()

    def get_server(self):
        if self._server is not None:
            return self._server

        with self._lock:
            if self._server is None:
                self._server = self._create_server()
        return self._server

    def _create_server(self):
        config = self.config

        storage = self._resolve_storage(config.get('storage'))

        options = {
            'enforce_state': config.get('enforce_state', True),
            'allow_implicit': config.get('allow_implicit', False),
            'access_lifetime': config.get('access_lifetime', 3600),
        }
        options.update(config.get('options') or {})
        audience = config.get('audience', '')

        server = OAuth2Server(storage, options)

        available_grant_types = config.get('grant_types')
        if available_grant_types is None:
            logger.warning("No grant_types configured for OAuth2; the server accepts no grants")
            available_grant_types = {}

        for name, create_strategy in GRANT_TYPES:
            if available_grant_types.get(name) is True:
                server.add_grant_type(create_strategy(server, options, audience))

        logger.info(f"OAuth2 server created with grant types: {[s.name for s in server.grant_types]}")
        return server

    def _resolve_storage(self, storage_config):
        if not storage_config:
            raise ConfigurationError('The storage configuration for OAuth2 is missing')

        if isinstance(storage_config, str):
            storage_services = {0: storage_config}
        elif isinstance(storage_config, Mapping):
            storage_services = dict(storage_config)
        elif isinstance(storage_config, (list, tuple)):
            storage_services = dict(enumerate(storage_config))
        else:
            raise ConfigurationError('The storage configuration for OAuth2 should be string or array')

        storage = {}
        for storage_key, storage_service in storage_services.items():
            storage[storage_key] = self.services.resolve(storage_service)
            logger.debug(f"OAuth2 storage '{storage_key}' resolved from '{storage_service}'")
        return storage
