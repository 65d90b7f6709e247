import argparse
import sys

from servicediscovery.builder import Builder
from servicediscovery.errors import ServiceDiscoveryError, ServiceNotFoundError
from servicediscovery.logs import configure_logging
from servicediscovery.output import FORMATTERS
from servicediscovery.resolver import ResolverType
from servicediscovery.service import ServiceQuery


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servicediscovery",
        description="Resolve a service name into its network endpoints"
    )
    parser.add_argument("name", help="Service name (e.g. namenode.service.consul)")
    parser.add_argument("-t", "--tag", action="append", default=[], help="Required tag (repeatable)")
    parser.add_argument("-r", "--resolver", choices=[t.value for t in ResolverType], default="dns", help="Resolver (default: dns)")
    parser.add_argument("--dns-host", default=None, help="Nameserver (default: system nameservers)")
    parser.add_argument("--dns-port", type=int, default=None, help="Nameserver port (default: 53)")
    parser.add_argument("--srv-only", action="store_true", help="Return SRV targets without A lookups")
    parser.add_argument("--http-host", default="localhost", help="Consul agent host (default: localhost)")
    parser.add_argument("--http-port", type=int, default=8500, help="Consul agent port (default: 8500)")
    parser.add_argument("--https", action="store_true", help="Talk to the Consul agent over HTTPS")
    parser.add_argument("--ca-file", default=None, help="CA bundle used to verify the Consul agent")
    parser.add_argument("--cert", default=None, help="Client certificate for the Consul agent")
    parser.add_argument("--token", default=None, help="Consul ACL token")
    parser.add_argument("-f", "--format", choices=sorted(FORMATTERS), default="text", help="Output format (default: text)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose mode")
    parser.add_argument("--version", action="version", version="%(prog)s 1.0.0")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    name = args.name.strip()
    if not name:
        print("Error: empty service name", file=sys.stderr)
        return 1

    builder = (
        Builder(args.resolver)
        .with_dns_host(args.dns_host)
        .with_dns_port(args.dns_port)
        .with_srv_only(args.srv_only)
        .with_http_host(args.http_host)
        .with_http_port(args.http_port)
    )
    if args.https:
        builder.with_https()
    if args.ca_file:
        builder.with_verify(args.ca_file)
    if args.cert:
        builder.with_cert(args.cert)
    if args.token:
        builder.with_token(args.token)

    query = ServiceQuery.of(name, args.tag)
    try:
        with builder.build() as resolver:
            services = list(resolver.resolve(query))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except ServiceNotFoundError as e:
        print(f"Not found: {e}", file=sys.stderr)
        return 2
    except ServiceDiscoveryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(FORMATTERS[args.format]().format(query, services))
    return 0


if __name__ == "__main__":
    sys.exit(main())
