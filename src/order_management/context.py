"""Per-request context threaded explicitly through the acceptance workflow."""

from dataclasses import dataclass
from uuid import uuid4

import structlog


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str

    @classmethod
    def new(cls, correlation_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=correlation_id or str(uuid4()))

    @classmethod
    def from_command(cls, command) -> "RequestContext":
        """Build a context from the correlation id Protean stamped on ``command``."""
        metadata = getattr(command, "_metadata", None)
        domain_meta = getattr(metadata, "domain", None) if metadata else None
        correlation_id = getattr(domain_meta, "correlation_id", None) if domain_meta else None
        return cls.new(correlation_id)

    def bind(self, logger):
        """Return ``logger`` with this context's fields bound."""
        return logger.bind(correlation_id=self.correlation_id)

    def logger(self, name: str):
        return self.bind(structlog.get_logger(name))
