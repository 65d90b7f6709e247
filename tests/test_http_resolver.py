from unittest.mock import MagicMock, patch

import consul
import pytest
import requests

from servicediscovery.builder import Builder
from servicediscovery.errors import ServiceDiscoveryGenericError, ServiceNotFoundError
from servicediscovery.http_resolver import HttpResolver
from servicediscovery.service import Service, ServiceQuery


def instance(node: str, address: str, port: int, tags=()):
    return {
        "Node": {"Node": node, "Address": address},
        "Service": {"ID": f"service0-{node}", "Service": "service0", "Port": port, "Tags": list(tags)},
        "Checks": [],
    }


def consul_client(instances) -> MagicMock:
    client = MagicMock()
    client.health.service.return_value = (1, instances)
    return client


def test_success():
    client = consul_client([instance("node0", "10.0.0.1", 8080), instance("node1", "10.0.0.2", 8080)])
    resolver = Builder("http").with_client(client).build()

    services = resolver.resolve(ServiceQuery.of("service0"))

    assert set(services) == {Service("service0", "10.0.0.1", 8080), Service("service0", "10.0.0.2", 8080)}
    client.health.service.assert_called_once_with("service0", tag=None, passing=True)


def test_tags_filter_instances():
    client = consul_client([
        instance("node0", "10.0.0.1", 8020, tags=["rpc", "active"]),
        instance("node1", "10.0.0.2", 8020, tags=["rpc"]),
    ])
    resolver = Builder("http").with_client(client).build()

    services = resolver.resolve(ServiceQuery.of("service0", ["rpc", "active"]))

    assert services == [Service("service0", "10.0.0.1", 8020)]
    client.health.service.assert_called_once_with("service0", tag="active", passing=True)


def test_no_healthy_nodes():
    resolver = Builder("http").with_client(consul_client([])).build()
    with pytest.raises(ServiceNotFoundError):
        resolver.resolve(ServiceQuery.of("service0"))


@pytest.mark.parametrize("error", [
    consul.ConsulException("500 internal error"),
    requests.ConnectionError("connection refused"),
])
def test_backend_failure_is_generic(error):
    client = MagicMock()
    client.health.service.side_effect = error
    resolver = Builder("http").with_client(client).build()

    with pytest.raises(ServiceDiscoveryGenericError) as exc:
        resolver.resolve(ServiceQuery.of("service0"))
    assert exc.value.__cause__ is error


def test_client_is_built_from_settings():
    with patch("servicediscovery.http_resolver.consul.Consul") as factory:
        resolver = (
            Builder("http")
            .with_http_host("consul.lc")
            .with_http_port(8501)
            .with_https()
            .with_verify("/etc/ssl/ca.pem")
            .with_cert(("/etc/ssl/client.pem", "/etc/ssl/client.key"))
            .with_token("secret")
            .build()
        )

    factory.assert_called_once_with(
        host="consul.lc",
        port=8501,
        scheme="https",
        verify="/etc/ssl/ca.pem",
        cert=("/etc/ssl/client.pem", "/etc/ssl/client.key"),
        token="secret",
        dc=None,
    )
    session = factory.return_value.http.session
    resolver.close()
    resolver.close()
    session.close.assert_called_once()


def test_supplied_client_is_not_closed():
    client = consul_client([])
    resolver = Builder("http").with_client(client).build()
    resolver.close()
    client.http.session.close.assert_not_called()


def test_not_initialized():
    with pytest.raises(ServiceDiscoveryGenericError, match="not been initialized"):
        HttpResolver().resolve(ServiceQuery.of("service0"))
