import dns.rdata
import dns.rdataclass
import dns.rdatatype
import pytest
import structlog

from servicediscovery.builder import Builder
from servicediscovery.client import Lookup, LookupStatus


def srv(target: str, port: int):
    return dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.SRV, f"1 500 {port} {target}")


def a(address: str):
    return dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.A, address)


def fake_lookup(answers: dict, status: LookupStatus = LookupStatus.HOST_NOT_FOUND):
    """Serves lookups from {(name, rdtype): [records]}, anything else fails with `status`."""
    def lookup(name, rdtype):
        records = answers.get((name.to_text(), rdtype))
        if records is None:
            return Lookup(name, rdtype, status, error=status.value)
        return Lookup(name, rdtype, LookupStatus.SUCCESSFUL, list(records))
    return lookup


NAMENODE = "namenode.service.lc."

NAMENODE_ANSWERS = {
    (NAMENODE, dns.rdatatype.SRV): [srv("node0.lc.", 8020), srv("node1.lc.", 8020)],
    ("node0.lc.", dns.rdatatype.A): [a("10.0.0.1")],
    ("node1.lc.", dns.rdatatype.A): [a("10.0.0.2")],
}


@pytest.fixture
def dns_resolver():
    resolver = Builder("dns").with_dns_host("127.0.0.1").with_dns_port(53).build()
    yield resolver
    resolver.close()


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()
