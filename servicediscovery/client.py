import socket
from dataclasses import dataclass, field
from enum import Enum

import dns.exception
import dns.inet
import dns.name
import dns.nameserver
import dns.rdataclass
import dns.rdatatype
import dns.resolver

from servicediscovery.errors import ConfigurationError

DEFAULT_PORT = 53
DEFAULT_TIMEOUT = 2.0


class LookupStatus(Enum):
    SUCCESSFUL = "successful"
    UNRECOVERABLE = "unrecoverable error"
    TRY_AGAIN = "try again"
    HOST_NOT_FOUND = "host not found"
    TYPE_NOT_FOUND = "type not found"


@dataclass
class Lookup:
    name: dns.name.Name
    rdtype: dns.rdatatype.RdataType
    status: LookupStatus
    answers: list = field(default_factory=list)
    error: str = ""

    @property
    def successful(self) -> bool:
        return self.status == LookupStatus.SUCCESSFUL


def system_nameservers() -> list[str]:
    try:
        configured = dns.resolver.Resolver().nameservers
    except dns.resolver.NoResolverConfiguration:
        return []
    return [ns if isinstance(ns, str) else ns.answer_nameserver() for ns in configured]


class DNSClient:
    def __init__(self, host: str | None = None, port: int | None = None, timeout: float = DEFAULT_TIMEOUT):
        if host is None:
            servers = system_nameservers()
            if not servers:
                raise ConfigurationError("No system nameservers configured")
            host = servers[0]
        self._resolver = dns.resolver.Resolver(configure=False)
        self._resolver.timeout = timeout
        self._resolver.lifetime = timeout * 2
        self._resolver.cache = dns.resolver.Cache()
        self._nameserver = None
        self.bind(host, port or DEFAULT_PORT)

    @property
    def nameserver(self) -> tuple[str, int]:
        return self._nameserver

    def bind(self, host: str, port: int = DEFAULT_PORT):
        address = host
        if not dns.inet.is_address(host):
            try:
                address = socket.gethostbyname(host)
            except socket.gaierror as e:
                raise ConfigurationError(f"Invalid nameserver '{host}': {e}") from e
        # one assignment, lookups in flight keep the list they already read
        self._resolver.nameservers = [dns.nameserver.Do53Nameserver(address, port)]
        self._nameserver = (address, port)

    def lookup(self, name: dns.name.Name, rdtype: dns.rdatatype.RdataType) -> Lookup:
        try:
            answer = self._resolver.resolve(name, rdtype, search=False)
        except dns.resolver.NXDOMAIN as e:
            return Lookup(name, rdtype, LookupStatus.HOST_NOT_FOUND, error=str(e))
        except dns.resolver.NoAnswer as e:
            return Lookup(name, rdtype, LookupStatus.TYPE_NOT_FOUND, error=str(e))
        except (dns.exception.Timeout, dns.resolver.NoNameservers) as e:
            return Lookup(name, rdtype, LookupStatus.TRY_AGAIN, error=str(e))
        except dns.exception.DNSException as e:
            return Lookup(name, rdtype, LookupStatus.UNRECOVERABLE, error=str(e))
        return Lookup(name, rdtype, LookupStatus.SUCCESSFUL, list(answer))

    def invalidate(self, name: dns.name.Name):
        # NXDOMAIN answers are cached under ANY
        for rdtype in (dns.rdatatype.SRV, dns.rdatatype.A, dns.rdatatype.ANY):
            self._resolver.cache.flush((name, rdtype, dns.rdataclass.IN))

    def close(self):
        self._resolver.cache.flush()
