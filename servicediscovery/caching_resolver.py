import threading
from concurrent.futures import Future

import structlog
from cachetools import TTLCache

from servicediscovery.errors import ServiceDiscoveryGenericError, ServiceNotFoundError
from servicediscovery.resolver import Resolver, ResolverType
from servicediscovery.service import Service, ServiceQuery

logger = structlog.get_logger(__name__)


class CachingResolver(Resolver):
    """Memoizes another resolver's answers for a fixed time after each load.

    Concurrent misses on the same query share a single inner resolution.
    Not-found answers are never cached.
    """

    name = "caching"

    def __init__(self):
        self._resolver: Resolver | None = None
        self._owns_resolver = False
        self._cache: TTLCache | None = None
        self._lock = threading.Lock()
        self._loading: dict[ServiceQuery, Future] = {}

    def init(self, builder) -> None:
        if builder.resolver is None:
            from servicediscovery.builder import Builder

            self._resolver = (
                Builder(ResolverType.DNS)
                .with_dns_host(builder.dns_host)
                .with_dns_port(builder.dns_port)
                .with_srv_only(builder.srv_only)
                .build()
            )
            self._owns_resolver = True
        else:
            self._resolver = builder.resolver
            self._owns_resolver = False
        self._cache = TTLCache(
            maxsize=builder.cache_max_size,
            ttl=builder.cache_expiration.total_seconds(),
        )

    def resolve(self, query: ServiceQuery) -> tuple[Service, ...]:
        if self._cache is None or self._resolver is None:
            raise ServiceDiscoveryGenericError("Caching resolver has not been initialized")
        try:
            return self._get(query)
        except ServiceNotFoundError:
            raise
        except Exception as e:
            raise ServiceDiscoveryGenericError(f"Could not load service {query}: {e}") from e

    def _get(self, query: ServiceQuery) -> tuple[Service, ...]:
        with self._lock:
            cached = self._cache.get(query)
            if cached is not None:
                return cached
            future = self._loading.get(query)
            leader = future is None
            if leader:
                future = Future()
                self._loading[query] = future

        if not leader:
            return future.result()

        try:
            services = self._load(query)
        except BaseException as e:
            future.set_exception(e)
            raise
        finally:
            with self._lock:
                self._loading.pop(query, None)
        future.set_result(services)
        return services

    def _load(self, query: ServiceQuery) -> tuple[Service, ...]:
        services = tuple(self._resolver.resolve(query))
        with self._lock:
            self._cache[query] = services
        logger.debug("service_cached", name=query.name, count=len(services))
        return services

    def invalidate(self, query: ServiceQuery) -> bool:
        self._check_initialized()
        with self._lock:
            return self._cache.pop(query, None) is not None

    def clear(self):
        self._check_initialized()
        with self._lock:
            self._cache.clear()

    def _check_initialized(self):
        if self._cache is None:
            raise ServiceDiscoveryGenericError("Caching resolver has not been initialized")

    def close(self) -> None:
        if self._cache is not None:
            self.clear()
        if self._resolver is not None and self._owns_resolver:
            try:
                self._resolver.close()
            except Exception as e:
                logger.warning("inner_resolver_close_failed", error=str(e))
        self._resolver = None
