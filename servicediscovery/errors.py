class ServiceDiscoveryError(Exception):
    pass


class ServiceDiscoveryGenericError(ServiceDiscoveryError):
    """Infrastructure trouble: transport failure, bad name, misuse."""


class ConfigurationError(ServiceDiscoveryGenericError):
    pass


class ServiceNotFoundError(ServiceDiscoveryError):
    """The service has no resolvable instances right now."""

    def __init__(self, message: str, query=None):
        super().__init__(message)
        self.query = query
