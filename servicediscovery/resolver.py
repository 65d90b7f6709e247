from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable

from servicediscovery.service import Service, ServiceQuery


class ResolverType(Enum):
    DNS = "dns"
    HTTP = "http"
    CACHING = "caching"


class Resolver(ABC):
    name: str = "base"

    @abstractmethod
    def init(self, builder) -> None:
        pass

    @abstractmethod
    def resolve(self, query: ServiceQuery) -> Iterable[Service]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
