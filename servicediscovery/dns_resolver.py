import threading
from typing import Iterator

import dns.exception
import dns.name
import dns.rdatatype
import structlog

from servicediscovery.client import DEFAULT_PORT, DNSClient, Lookup, system_nameservers
from servicediscovery.errors import ServiceDiscoveryGenericError, ServiceNotFoundError
from servicediscovery.resolver import Resolver
from servicediscovery.service import Service, ServiceQuery

logger = structlog.get_logger(__name__)


class DnsResolver(Resolver):
    """Resolves a service through its SRV records, then an A lookup per target.

    When the SRV lookup fails on the bound nameserver the resolver walks the
    other system nameservers, rebinding to the first one that answers.
    """

    name = "dns"

    def __init__(self):
        self._client: DNSClient | None = None
        self._srv_only = False
        self._failover_lock = threading.Lock()

    def init(self, builder) -> None:
        self._client = DNSClient(builder.dns_host, builder.dns_port)
        self._srv_only = builder.srv_only
        logger.debug("dns_resolver_initialized", nameserver=self._client.nameserver, srv_only=self._srv_only)

    def resolve(self, query: ServiceQuery) -> Iterator[Service]:
        if self._client is None:
            raise ServiceDiscoveryGenericError("DNS resolver has not been initialized")
        try:
            name = dns.name.from_text(query.name)
        except dns.exception.DNSException as e:
            raise ServiceDiscoveryGenericError(f"Invalid service name '{query.name}': {e}") from e

        records = [r for r in self._srv_records(name, query) if r.rdtype == dns.rdatatype.SRV]
        return self._services(query, records)

    def lookup(self, name: dns.name.Name, rdtype: dns.rdatatype.RdataType) -> Lookup:
        client = self._client
        if client is None:
            raise ServiceDiscoveryGenericError("DNS resolver has not been initialized")
        return client.lookup(name, rdtype)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _srv_records(self, name: dns.name.Name, query: ServiceQuery) -> list:
        client = self._client
        failed = client.nameserver
        lookup = self.lookup(name, dns.rdatatype.SRV)
        if lookup.successful:
            return lookup.answers
        logger.debug("srv_lookup_failed", name=query.name, nameserver=failed, error=lookup.error)

        with self._failover_lock:
            tried = {failed}
            # another thread may have failed over while we waited
            if client.nameserver != failed:
                tried.add(client.nameserver)
                client.invalidate(name)
                lookup = self.lookup(name, dns.rdatatype.SRV)
                if lookup.successful:
                    return lookup.answers
                logger.debug("srv_lookup_failed", name=query.name, nameserver=client.nameserver, error=lookup.error)

            for server in system_nameservers():
                if (server, DEFAULT_PORT) in tried:
                    continue
                client.invalidate(name)
                client.bind(server)
                tried.add(client.nameserver)
                lookup = self.lookup(name, dns.rdatatype.SRV)
                if lookup.successful:
                    logger.info("nameserver_failover", name=query.name, previous=failed, nameserver=client.nameserver)
                    return lookup.answers
                logger.debug("srv_lookup_failed", name=query.name, nameserver=client.nameserver, error=lookup.error)

        raise ServiceNotFoundError(f"Error: {lookup.error or lookup.status.value} Could not find service {query}", query)

    def _services(self, query: ServiceQuery, records: list) -> Iterator[Service]:
        for srv in records:
            if self._srv_only:
                yield Service(query.name, srv.target.to_text(omit_final_dot=True), srv.port)
                continue
            address = self._address(srv.target)
            if address is None:
                logger.debug("srv_target_dropped", name=query.name, target=srv.target.to_text())
                continue
            yield Service(query.name, address, srv.port)

    def _address(self, target: dns.name.Name) -> str | None:
        for r in self.lookup(target, dns.rdatatype.A).answers:
            if r.rdtype == dns.rdatatype.A:
                return r.address
        return None
