class OAuth2ServerError(Exception):
    """Base exception for the OAuth2 server factory."""


class ConfigurationError(OAuth2ServerError, RuntimeError):
    """Raised when the OAuth2 configuration block is missing or malformed."""


class ServiceNotFoundError(OAuth2ServerError, LookupError):
    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Unable to resolve service '{identifier}'")


class StorageError(OAuth2ServerError):
    """Raised by the server when its storage registry cannot serve a grant."""


class MissingStorageError(StorageError, LookupError):
    def __init__(self, role):
        self.role = role
        super().__init__(f"No storage is configured for the '{role}' role")


class InvalidStorageError(StorageError, TypeError):
    def __init__(self, role, storage, reason=None):
        self.role = role
        self.storage = storage
        message = reason or f"{type(storage).__name__} cannot be used as '{role}' storage"
        super().__init__(message)
