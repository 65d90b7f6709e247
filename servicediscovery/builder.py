from datetime import timedelta

import structlog

from servicediscovery.caching_resolver import CachingResolver
from servicediscovery.dns_resolver import DnsResolver
from servicediscovery.errors import ConfigurationError
from servicediscovery.http_resolver import HttpResolver
from servicediscovery.resolver import Resolver, ResolverType

logger = structlog.get_logger(__name__)

RESOLVERS = {
    ResolverType.DNS: DnsResolver,
    ResolverType.HTTP: HttpResolver,
    ResolverType.CACHING: CachingResolver,
}


class Builder:
    """Collects the settings for one resolver and builds it.

    Example:
        resolver = (
            Builder(ResolverType.CACHING)
            .with_dns_host("127.0.0.1")
            .with_dns_port(5453)
            .with_cache_expiration(timedelta(seconds=30))
            .build()
        )
    """

    def __init__(self, resolver_type: ResolverType | str):
        if isinstance(resolver_type, str):
            resolver_type = resolver_type.lower()
        try:
            self.resolver_type = ResolverType(resolver_type)
        except ValueError as e:
            raise ConfigurationError(f"Unknown service discovery resolver type: {resolver_type}") from e
        self._built = False

        # DNS, a missing host means the system nameservers
        self.dns_host: str | None = None
        self.dns_port: int | None = None
        self.srv_only = False

        # HTTP
        self.http_host = "localhost"
        self.http_port = 8500
        self.https = False
        self.verify: bool | str = True
        self.cert: str | tuple[str, str] | None = None
        self.token: str | None = None
        self.datacenter: str | None = None
        self.client = None

        # Caching
        self.resolver: Resolver | None = None
        self.cache_expiration = timedelta(minutes=1)
        self.cache_max_size = 1024

    def with_dns_host(self, host: str | None) -> "Builder":
        self.dns_host = host
        return self

    def with_dns_port(self, port: int | None) -> "Builder":
        self.dns_port = port
        return self

    def with_srv_only(self, srv_only: bool = True) -> "Builder":
        self.srv_only = srv_only
        return self

    def with_http_host(self, host: str) -> "Builder":
        self.http_host = host
        return self

    def with_http_port(self, port: int) -> "Builder":
        self.http_port = port
        return self

    def with_https(self) -> "Builder":
        self.https = True
        return self

    def with_verify(self, verify: bool | str) -> "Builder":
        self.verify = verify
        return self

    def with_cert(self, cert: str | tuple[str, str]) -> "Builder":
        self.cert = cert
        return self

    def with_token(self, token: str) -> "Builder":
        self.token = token
        return self

    def with_datacenter(self, datacenter: str) -> "Builder":
        self.datacenter = datacenter
        return self

    def with_client(self, client) -> "Builder":
        self.client = client
        return self

    def with_resolver(self, resolver: Resolver) -> "Builder":
        self.resolver = resolver
        return self

    def with_cache_expiration(self, expiration: timedelta | float) -> "Builder":
        if not isinstance(expiration, timedelta):
            expiration = timedelta(seconds=expiration)
        self.cache_expiration = expiration
        return self

    def with_cache_max_size(self, size: int) -> "Builder":
        self.cache_max_size = size
        return self

    def validate(self):
        if self.resolver_type in (ResolverType.DNS, ResolverType.CACHING):
            if self.dns_host is None and self.dns_port is not None:
                raise ConfigurationError("DNS port given without a DNS host")
            if self.dns_port is not None:
                _check_port(self.dns_port, "DNS")

        if self.resolver_type == ResolverType.HTTP and self.client is None:
            if not self.http_host:
                raise ConfigurationError("HTTP host is required")
            _check_port(self.http_port, "HTTP")

        if self.resolver_type == ResolverType.CACHING:
            if self.cache_expiration <= timedelta(0):
                raise ConfigurationError(f"Cache expiration must be positive, got {self.cache_expiration}")
            if self.cache_max_size < 1:
                raise ConfigurationError(f"Cache size must be at least 1, got {self.cache_max_size}")
            if self.resolver is not None and not isinstance(self.resolver, Resolver):
                raise ConfigurationError(f"Not a resolver: {self.resolver!r}")

    def build(self) -> Resolver:
        if self._built:
            raise ConfigurationError("Builder has already been used")
        self.validate()
        resolver = RESOLVERS[self.resolver_type]()
        resolver.init(self)
        self._built = True
        logger.debug("resolver_built", resolver=resolver.name)
        return resolver


def _check_port(port, label: str):
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise ConfigurationError(f"Invalid {label} port: {port!r}")
