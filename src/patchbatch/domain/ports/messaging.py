"""Port for the user-facing message sink."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from patchbatch.domain.model import MessageLevel


@dataclass(frozen=True, slots=True)
class ObjectLink:
    target_id: str
    url: str | None = None

    def render(self) -> str:
        if self.url is None:
            return self.target_id
        return f"{self.target_id} <{self.url}>"


@dataclass(frozen=True, slots=True)
class Message:
    level: MessageLevel
    text: str
    links: tuple[ObjectLink, ...] = field(default_factory=tuple)

    def render(self) -> str:
        if not self.links:
            return self.text
        return f"{self.text} {', '.join(link.render() for link in self.links)}"


@runtime_checkable
class MessageSink(Protocol):
    def emit(self, message: Message) -> None: ...
