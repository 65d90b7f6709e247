import consul
import requests
import structlog

from servicediscovery.errors import ServiceDiscoveryGenericError, ServiceNotFoundError
from servicediscovery.resolver import Resolver
from servicediscovery.service import Service, ServiceQuery

logger = structlog.get_logger(__name__)


class HttpResolver(Resolver):
    """Resolves healthy instances through a Consul agent's health endpoint."""

    name = "http"

    def __init__(self):
        self._client: consul.Consul | None = None
        self._owns_client = False

    def init(self, builder) -> None:
        if builder.client is not None:
            self._client = builder.client
            self._owns_client = False
        else:
            self._client = self._create_client(builder)
            self._owns_client = True

    def _create_client(self, builder) -> consul.Consul:
        try:
            return consul.Consul(
                host=builder.http_host,
                port=builder.http_port,
                scheme="https" if builder.https else "http",
                verify=builder.verify,
                cert=builder.cert,
                token=builder.token,
                dc=builder.datacenter,
            )
        except (consul.ConsulException, ValueError) as e:
            raise ServiceDiscoveryGenericError(f"Could not initialize client: {e}") from e

    def resolve(self, query: ServiceQuery) -> list[Service]:
        if self._client is None:
            raise ServiceDiscoveryGenericError("HTTP resolver has not been initialized")

        # the agent filters on one tag, the rest are checked here
        tag = min(query.tags) if query.tags else None
        try:
            _, instances = self._client.health.service(query.name, tag=tag, passing=True)
        except (consul.ConsulException, requests.RequestException) as e:
            raise ServiceDiscoveryGenericError(f"Could not query service {query}: {e}") from e

        services = [
            Service(i["Service"]["Service"], i["Node"]["Address"], i["Service"]["Port"])
            for i in instances or []
            if query.tags <= set(i["Service"].get("Tags") or [])
        ]
        if not services:
            raise ServiceNotFoundError(f"Could not find service {query}", query)
        logger.debug("healthy_instances", name=query.name, count=len(services))
        return services

    def close(self) -> None:
        if self._client is None:
            return
        if self._owns_client:
            session = getattr(self._client.http, "session", None)
            if session is not None:
                session.close()
        self._client = None
