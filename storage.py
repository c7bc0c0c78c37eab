"""Storage roles understood by the OAuth2 server, and an in-memory adapter.

A storage adapter serves a role by implementing that role's interface. Method
names are distinct across roles, so a single adapter (for instance one backed
by a single database) may serve all of them at once. The one exception is
``client_credentials``: it extends the ``client`` role and shares its
``get_client`` lookup, so an adapter serving it also serves ``client``.
"""
import abc
import logging
import threading

from werkzeug.security import generate_password_hash, check_password_hash

from models import Client, Token

ACCESS_TOKEN = 'access_token'
AUTHORIZATION_CODE = 'authorization_code'
CLIENT_CREDENTIALS = 'client_credentials'
CLIENT = 'client'
USER_CREDENTIALS = 'user_credentials'
REFRESH_TOKEN = 'refresh_token'
JWT_BEARER = 'jwt_bearer'


class AccessTokenStorage(abc.ABC):
    @abc.abstractmethod
    def save_access_token(self, token, client_id, user_id):
        """Persist an issued bearer token (the dict produced by the generator)."""


class ClientStorage(abc.ABC):
    @abc.abstractmethod
    def get_client(self, client_id):
        """Return a :class:`authlib.oauth2.rfc6749.ClientMixin` or ``None``."""


class ClientCredentialsStorage(ClientStorage):
    """Clients returned by this role authenticate with ``check_client_secret``."""


class AuthorizationCodeStorage(abc.ABC):
    @abc.abstractmethod
    def set_authorization_code(self, code):
        pass

    @abc.abstractmethod
    def get_authorization_code(self, code, client_id):
        pass

    @abc.abstractmethod
    def expire_authorization_code(self, code):
        pass


class UserCredentialsStorage(abc.ABC):
    @abc.abstractmethod
    def check_user_credentials(self, username, password):
        pass


class RefreshTokenStorage(abc.ABC):
    @abc.abstractmethod
    def get_refresh_token(self, refresh_token):
        """Return the :class:`models.Token` carrying ``refresh_token`` or ``None``."""

    @abc.abstractmethod
    def unset_refresh_token(self, refresh_token):
        pass


class JwtBearerStorage(abc.ABC):
    @abc.abstractmethod
    def get_client_key(self, client_id, subject):
        """Return the key that signs assertions issued by ``client_id`` for ``subject``."""


STORAGE_ROLES = {
    ACCESS_TOKEN: AccessTokenStorage,
    AUTHORIZATION_CODE: AuthorizationCodeStorage,
    CLIENT_CREDENTIALS: ClientCredentialsStorage,
    CLIENT: ClientStorage,
    USER_CREDENTIALS: UserCredentialsStorage,
    REFRESH_TOKEN: RefreshTokenStorage,
    JWT_BEARER: JwtBearerStorage,
}


def implemented_roles(storage):
    return [role for role, interface in STORAGE_ROLES.items() if isinstance(storage, interface)]


class MemoryStorage(AccessTokenStorage, AuthorizationCodeStorage, ClientCredentialsStorage,
                    UserCredentialsStorage, RefreshTokenStorage, JwtBearerStorage):
    """Development storage keeping every OAuth2 record in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self.clients = {}
        self.users = {}
        self.authorization_codes = {}
        self.tokens = {}
        self.refresh_tokens = {}
        self.client_keys = {}

    def add_client(self, client_id, client_secret=None, **kwargs):
        hashed_secret = None
        if client_secret:
            hashed_secret = generate_password_hash(client_secret, method='pbkdf2:sha256', salt_length=16)
        client = Client(client_id=client_id, client_secret=hashed_secret, **kwargs)
        with self._lock:
            self.clients[client_id] = client
        return client

    def add_user(self, username, password):
        with self._lock:
            self.users[username] = generate_password_hash(password, method='pbkdf2:sha256', salt_length=16)

    def set_client_key(self, client_id, key, subject=None):
        with self._lock:
            self.client_keys[(client_id, subject)] = key

    def get_client(self, client_id):
        return self.clients.get(client_id)

    def save_access_token(self, token, client_id, user_id):
        record = Token(
            access_token=token.get('access_token'),
            token_type=token.get('token_type', 'Bearer'),
            expires_in=token.get('expires_in', 3600),
            refresh_token=token.get('refresh_token'),
            scope=token.get('scope', ''),
            user_id=user_id,
            client_id=client_id
        )
        with self._lock:
            self.tokens[record.access_token] = record
            if record.refresh_token:
                self.refresh_tokens[record.refresh_token] = record
        return record

    def set_authorization_code(self, code):
        with self._lock:
            self.authorization_codes[code.code] = code

    def get_authorization_code(self, code, client_id):
        authorization_code = self.authorization_codes.get(code)
        if authorization_code is None or authorization_code.client_id != client_id:
            return None
        if authorization_code.is_expired():
            self.expire_authorization_code(code)
            return None
        return authorization_code

    def expire_authorization_code(self, code):
        with self._lock:
            self.authorization_codes.pop(code, None)

    def check_user_credentials(self, username, password):
        password_hash = self.users.get(username)
        if password_hash is None:
            return False
        return check_password_hash(password_hash, password)

    def get_refresh_token(self, refresh_token):
        record = self.refresh_tokens.get(refresh_token)
        if record is None or record.is_revoked():
            return None
        return record

    def unset_refresh_token(self, refresh_token):
        with self._lock:
            record = self.refresh_tokens.pop(refresh_token, None)
        if record is not None:
            record.revoked = True
            logging.debug(f"Refresh token unset for client: {record.client_id}")

    def get_client_key(self, client_id, subject):
        key = self.client_keys.get((client_id, subject))
        if key is None:
            key = self.client_keys.get((client_id, None))
        return key
