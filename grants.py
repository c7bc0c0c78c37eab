"""Grant-type strategies attached to :class:`auth.OAuth2Server`.

Authlib instantiates a grant class for every token or authorization request.
A strategy is registered as the extension of its grant class: it is built
once from a storage adapter and an option subset, and binds both onto each
grant instance Authlib creates.
"""
from authlib.oauth2.rfc6749 import grants
from authlib.oauth2.rfc6749.errors import InvalidGrantError, InvalidRequestError
from authlib.oauth2.rfc7523 import JWTBearerGrant as _JWTBearerGrant

from auth import security_logger
from models import AuthorizationCode as AuthorizationCodeRecord, User

TOKEN_ENDPOINT_AUTH_METHODS = ['client_secret_basic', 'client_secret_post']


class ClientCredentialsGrant(grants.ClientCredentialsGrant):
    TOKEN_ENDPOINT_AUTH_METHODS = TOKEN_ENDPOINT_AUTH_METHODS
    storage = None


class AuthorizationCodeGrant(grants.AuthorizationCodeGrant):
    TOKEN_ENDPOINT_AUTH_METHODS = TOKEN_ENDPOINT_AUTH_METHODS
    storage = None

    def validate_authorization_request(self):
        if self.server.options.get('enforce_state') and not self.request.payload.state:
            raise InvalidRequestError("Missing 'state' in request.")
        return super().validate_authorization_request()

    def save_authorization_code(self, code, request):
        client_id = request.client.get_client_id()
        user_id = request.user.get_user_id() if request.user else None
        payload = request.payload

        self.storage.set_authorization_code(AuthorizationCodeRecord(
            code=code,
            client_id=client_id,
            redirect_uri=payload.redirect_uri,
            scope=payload.scope,
            user=user_id,
            state=payload.state,
            nonce=payload.data.get('nonce')
        ))

        security_logger.log_auth_event('AUTH_CODE_CREATED', user_id=user_id, client_id=client_id)

    def query_authorization_code(self, code, client):
        return self.storage.get_authorization_code(code, client.get_client_id())

    def delete_authorization_code(self, authorization_code):
        self.storage.expire_authorization_code(authorization_code.code)

    def authenticate_user(self, authorization_code):
        user_id = authorization_code.get_user_id()
        if user_id is None:
            return None
        return User(user_id)


class PasswordGrant(grants.ResourceOwnerPasswordCredentialsGrant):
    TOKEN_ENDPOINT_AUTH_METHODS = TOKEN_ENDPOINT_AUTH_METHODS
    storage = None

    def authenticate_user(self, username, password):
        if self.storage.check_user_credentials(username, password):
            return User(username)
        security_logger.log_auth_event('PASSWORD_REJECTED', user_id=username)
        return None


class JwtBearerGrant(_JWTBearerGrant):
    storage = None
    audience = ''
    assertion_subject = None

    def extract_assertion(self, assertion):
        headers, claims = super().extract_assertion(assertion)
        # The key lookup is per (client, subject); Authlib only hands over the client.
        self.assertion_subject = claims.get('sub')
        return headers, claims

    def get_audiences(self):
        if not self.audience:
            return []
        return [self.audience]

    def resolve_issuer_client(self, issuer):
        return self.server.query_client(issuer)

    def resolve_client_public_key(self, client):
        key = self.storage.get_client_key(client.get_client_id(), self.assertion_subject)
        if key is None:
            raise InvalidGrantError(description="No key is registered for this assertion.")
        return key

    def authenticate_user(self, subject):
        return User(subject)

    def has_granted_permission(self, client, user):
        return self.storage.get_client_key(client.get_client_id(), user.get_user_id()) is not None


class RefreshTokenGrant(grants.RefreshTokenGrant):
    TOKEN_ENDPOINT_AUTH_METHODS = TOKEN_ENDPOINT_AUTH_METHODS
    storage = None
    unset_refresh_token_after_use = True

    def authenticate_refresh_token(self, refresh_token):
        return self.storage.get_refresh_token(refresh_token)

    def authenticate_user(self, refresh_token):
        if refresh_token.user_id is None:
            return None
        return User(refresh_token.user_id)

    def revoke_old_credential(self, refresh_token):
        # Only a token that has just been replaced may be unset.
        if not (self.INCLUDE_NEW_REFRESH_TOKEN and self.unset_refresh_token_after_use):
            return
        self.storage.unset_refresh_token(refresh_token.refresh_token)
        security_logger.log_auth_event(
            'REFRESH_TOKEN_REVOKED',
            user_id=refresh_token.user_id,
            client_id=refresh_token.client_id
        )


class GrantStrategy:
    name = None
    grant_class = None

    def __init__(self, storage, options=None):
        self.storage = storage
        self.options = dict(options or {})

    def __call__(self, grant):
        grant.storage = self.storage

    def __repr__(self):
        return f"<{type(self).__name__} storage={type(self.storage).__name__} options={self.options!r}>"


class ClientCredentials(GrantStrategy):
    name = 'client_credentials'
    grant_class = ClientCredentialsGrant

    def __call__(self, grant):
        super().__call__(grant)
        if not self.options.get('allow_credentials_in_request_body', True):
            grant.TOKEN_ENDPOINT_AUTH_METHODS = ['client_secret_basic']


class AuthorizationCode(GrantStrategy):
    name = 'authorization_code'
    grant_class = AuthorizationCodeGrant

    def __init__(self, storage):
        super().__init__(storage)


class UserCredentials(GrantStrategy):
    name = 'password'
    grant_class = PasswordGrant

    def __init__(self, storage):
        super().__init__(storage)


class JwtBearer(GrantStrategy):
    name = 'jwt'
    grant_class = JwtBearerGrant

    def __init__(self, storage, audience=''):
        super().__init__(storage)
        self.audience = audience

    def __call__(self, grant):
        super().__call__(grant)
        grant.audience = self.audience


class RefreshToken(GrantStrategy):
    name = 'refresh_token'
    grant_class = RefreshTokenGrant

    def __call__(self, grant):
        super().__call__(grant)
        grant.INCLUDE_NEW_REFRESH_TOKEN = self.options.get('always_issue_new_refresh_token', False)
        grant.unset_refresh_token_after_use = self.options.get('unset_refresh_token_after_use', True)
