import logging
from collections.abc import Mapping
from types import MappingProxyType

from authlib.integrations.flask_oauth2 import AuthorizationServer
from authlib.oauth2.rfc6749 import grants
from flask import has_request_context, request as flask_request

from exceptions import InvalidStorageError, MissingStorageError
from storage import STORAGE_ROLES, ACCESS_TOKEN, CLIENT, CLIENT_CREDENTIALS, implemented_roles

DEFAULT_OPTIONS = {
    'enforce_state': True,
    'allow_implicit': False,
    'access_lifetime': 3600,
}


class SecurityLogger:
    def __init__(self):
        self.logger = logging.getLogger('security')

    def log_auth_event(self, event_type, user_id=None, client_id=None, ip_address=None, details=None):
        user_id = str(user_id) if user_id is not None else None
        masked_user = f"{user_id[:8]}***" if user_id and len(user_id) > 8 else "unknown"
        masked_client = f"{client_id[:8]}***" if client_id and len(client_id) > 8 else "unknown"

        log_message = f"{event_type} - User: {masked_user}, Client: {masked_client}, IP: {ip_address or 'unknown'}"
        if details:
            log_message += f", Details: {details}"

        self.logger.info(log_message)


security_logger = SecurityLogger()


class OAuth2Server(AuthorizationServer):
    """Authorization server reading its persistence from a storage registry.

    ``storage`` maps role names (see :mod:`storage`) to adapters. Entries
    under an integer key are positional: the adapter is bound to every role
    whose interface it implements, unless a role was given explicitly.
    """

    def __init__(self, storage, options=None, app=None):
        merged = dict(DEFAULT_OPTIONS)
        merged.update(options or {})
        self.options = MappingProxyType(merged)
        self.storages = MappingProxyType(self._bind_storages(storage))
        self.grant_types = []
        super().__init__(app=app)

        if self.options['allow_implicit']:
            self.register_grant(grants.ImplicitGrant)
            logging.info("Implicit grant enabled")

    @staticmethod
    def _bind_storages(storage):
        if not isinstance(storage, Mapping):
            storage = {0: storage}

        bound = {}
        positional = []
        for key, adapter in storage.items():
            if isinstance(key, int):
                positional.append(adapter)
                continue
            interface = STORAGE_ROLES.get(key)
            if interface is not None and not isinstance(adapter, interface):
                raise InvalidStorageError(key, adapter)
            bound[key] = adapter

        for adapter in positional:
            roles = implemented_roles(adapter)
            if not roles:
                raise InvalidStorageError(
                    None, adapter, f"{type(adapter).__name__} does not implement any OAuth2 storage role")
            for role in roles:
                bound.setdefault(role, adapter)

        return bound

    def get_storage(self, role):
        try:
            return self.storages[role]
        except KeyError:
            raise MissingStorageError(role) from None

    def add_grant_type(self, strategy):
        self.register_grant(strategy.grant_class, [strategy])
        self.grant_types.append(strategy)
        logging.info(f"Grant type added: {strategy.name}")

    def query_client(self, client_id):
        if CLIENT_CREDENTIALS in self.storages:
            return self.storages[CLIENT_CREDENTIALS].get_client(client_id)
        return self.get_storage(CLIENT).get_client(client_id)

    def save_token(self, token, request):
        client_id = request.client.get_client_id()
        user_id = request.user.get_user_id() if request.user else None

        self.get_storage(ACCESS_TOKEN).save_access_token(token, client_id, user_id)

        security_logger.log_auth_event(
            'TOKEN_CREATED',
            user_id=user_id,
            client_id=client_id,
            ip_address=flask_request.remote_addr if has_request_context() else None
        )

    def create_bearer_token_generator(self, config):
        generator = super().create_bearer_token_generator(config)
        generator.expires_generator = self._expires_in
        return generator

    def _expires_in(self, client, grant_type):
        return int(self.options['access_lifetime'])
