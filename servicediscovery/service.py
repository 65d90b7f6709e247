from dataclasses import dataclass, field
from typing import Iterable


@dataclass(frozen=True)
class Service:
    name: str
    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.name} -> {self.address}:{self.port}"


@dataclass(frozen=True)
class ServiceQuery:
    """A service name plus the tags every returned instance must carry.

    Used as the caching key, so tags are always stored as a frozenset.
    """

    name: str
    tags: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))

    @classmethod
    def of(cls, name: str, tags: Iterable[str] = ()) -> "ServiceQuery":
        return cls(name, frozenset(tags))

    def __str__(self) -> str:
        if not self.tags:
            return self.name
        return f"{self.name} [{', '.join(sorted(self.tags))}]"
