import json

from servicediscovery.service import Service, ServiceQuery


def _sorted(services) -> list[Service]:
    return sorted(services, key=lambda s: (s.address, s.port))


class TextFormatter:
    C = {
        "reset": "\033[0m", "bold": "\033[1m",
        "cyan": "\033[36m", "green": "\033[32m", "white": "\033[37m", "dim": "\033[2m"
    }

    def format(self, query: ServiceQuery, services) -> str:
        services = _sorted(services)
        lines = []
        tags = f" {self.C['dim']}[{', '.join(sorted(query.tags))}]{self.C['reset']}" if query.tags else ""

        lines.append(f"\n{self.C['bold']}{self.C['cyan']}==============================================================={self.C['reset']}")
        lines.append(f"{self.C['bold']}{self.C['cyan']}  Service: {query.name}{self.C['reset']}{tags}")
        lines.append(f"{self.C['cyan']}==============================================================={self.C['reset']}")
        lines.append(f"  {self.C['white']}{len(services)} endpoints{self.C['reset']}\n")

        if services:
            lines.append(f"{self.C['bold']}{self.C['green']}  ENDPOINTS{self.C['reset']}")
            lines.append(f"{self.C['dim']}  -----------------------------------------------{self.C['reset']}")
            for s in services:
                lines.append(f"  {self.C['green']}*{self.C['reset']} {s.address}:{s.port} {self.C['dim']}({s.name}){self.C['reset']}")
            lines.append("")

        lines.append(f"{self.C['cyan']}==============================================================={self.C['reset']}\n")
        return "\n".join(lines)


class MarkdownFormatter:
    """Generates a Markdown table of resolved endpoints."""

    def format(self, query: ServiceQuery, services) -> str:
        services = _sorted(services)
        lines = [f"# Service: {query.name}", ""]
        if query.tags:
            lines.append(f"- **Tags**: {', '.join(f'`{t}`' for t in sorted(query.tags))}")
        lines.append(f"- **Endpoints**: {len(services)}")
        lines.append("")

        if services:
            lines.append("| Name | Address | Port |")
            lines.append("|---|---|---|")
            for s in services:
                lines.append(f"| `{s.name}` | `{s.address}` | {s.port} |")
        else:
            lines.append("*No endpoints found.*")
        return "\n".join(lines)


class JsonFormatter:
    def format(self, query: ServiceQuery, services) -> str:
        return json.dumps({
            "name": query.name,
            "tags": sorted(query.tags),
            "services": [{"name": s.name, "address": s.address, "port": s.port} for s in _sorted(services)],
        }, indent=2)


FORMATTERS = {"text": TextFormatter, "markdown": MarkdownFormatter, "json": JsonFormatter}
