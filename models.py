import logging
import time
from authlib.oauth2.rfc6749 import ClientMixin, TokenMixin, AuthorizationCodeMixin
from authlib.oauth2.rfc6749.util import scope_to_list, list_to_scope
from werkzeug.security import check_password_hash


class Client(ClientMixin):
    def __init__(self, client_id, client_secret=None, redirect_uris=None, grant_types=None,
                 scope='', client_name='Unknown Client',
                 token_endpoint_auth_methods=('client_secret_basic', 'client_secret_post')):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uris = list(redirect_uris or [])
        self.grant_types = list(grant_types or [])
        self.scope = scope
        self.client_name = client_name
        self.token_endpoint_auth_methods = list(token_endpoint_auth_methods)

    def get_client_id(self):
        return self.client_id

    def get_default_redirect_uri(self):
        if self.redirect_uris:
            return self.redirect_uris[0]
        return None

    def get_allowed_scope(self, scope):
        if not scope:
            return ''
        allowed = set(scope_to_list(self.scope))
        return list_to_scope([s for s in scope_to_list(scope) if s in allowed])

    def check_redirect_uri(self, redirect_uri):
        return redirect_uri in self.redirect_uris

    def check_client_secret(self, client_secret):
        logging.info(f"Checking client secret for client: {self.client_id}")
        if not self.client_secret:
            return False
        return check_password_hash(self.client_secret, client_secret)

    def check_endpoint_auth_method(self, method, endpoint):
        if endpoint == 'token':
            return method in self.token_endpoint_auth_methods
        return True

    def check_response_type(self, response_type):
        if response_type == 'code':
            return 'authorization_code' in self.grant_types
        if response_type == 'token':
            return 'implicit' in self.grant_types
        return False

    def check_grant_type(self, grant_type):
        return grant_type in self.grant_types


class Token(TokenMixin):
    def __init__(self, access_token=None, token_type='Bearer', expires_in=3600, refresh_token=None,
                 scope='', user_id=None, client_id=None, issued_at=None):
        self.access_token = access_token
        self.token_type = token_type
        self.expires_in = expires_in
        self.refresh_token = refresh_token
        self.scope = scope
        self.user_id = user_id
        self.client_id = client_id
        self.issued_at = issued_at if issued_at is not None else int(time.time())
        self.revoked = False

    def check_client(self, client):
        return self.client_id == client.get_client_id()

    def get_client_id(self):
        return self.client_id

    def get_scope(self):
        return self.scope

    def get_expires_in(self):
        return self.expires_in

    def is_expired(self):
        return self.issued_at + self.expires_in < time.time()

    def is_revoked(self):
        return self.revoked


class AuthorizationCode(AuthorizationCodeMixin):
    # Codes are short lived, mirroring OAUTH2_AUTHORIZATION_CODE_EXPIRES
    EXPIRES_IN = 600

    def __init__(self, code, client_id, redirect_uri, scope, user, state=None, auth_time=None, nonce=None):
        self.code = code
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.scope = scope
        self.user = user
        self.state = state
        self.auth_time = auth_time if auth_time is not None else int(time.time())
        self.nonce = nonce

    def get_redirect_uri(self):
        return self.redirect_uri

    def get_scope(self):
        return self.scope

    def get_auth_time(self):
        return self.auth_time

    def get_nonce(self):
        return self.nonce

    def get_client_id(self):
        return self.client_id

    def get_user_id(self):
        return self.user

    def is_expired(self):
        return self.auth_time + self.EXPIRES_IN < time.time()


class User:
    def __init__(self, user_id):
        self.id = user_id

    def get_user_id(self):
        return self.id
