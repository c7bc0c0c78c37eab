import logging
import threading

from exceptions import ServiceNotFoundError


class ServiceLocator:
    """Resolves service identifiers to shared instances.

    Services are registered either as ready instances or as factories taking
    the locator itself, so a factory can pull its own dependencies. A factory
    runs at most once; the instance it returns is handed to every later caller.
    """

    def __init__(self, factories=None):
        self._factories = dict(factories or {})
        self._instances = {}
        self._lock = threading.RLock()

    def register(self, identifier, factory):
        if not callable(factory):
            raise TypeError(f"Factory for '{identifier}' must be callable")
        with self._lock:
            self._factories[identifier] = factory
            self._instances.pop(identifier, None)

    def set_service(self, identifier, instance):
        with self._lock:
            self._instances[identifier] = instance

    def has(self, identifier):
        return identifier in self._instances or identifier in self._factories

    def resolve(self, identifier):
        with self._lock:
            if identifier in self._instances:
                return self._instances[identifier]

            factory = self._factories.get(identifier)
            if factory is None:
                logging.error(f"Service not found: {identifier}")
                raise ServiceNotFoundError(identifier)

            instance = factory(self)
            self._instances[identifier] = instance
            logging.debug(f"Service created: {identifier}")
            return instance
