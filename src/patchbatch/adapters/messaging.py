"""Message sinks that surface batch results to the operator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from patchbatch.domain.model import MessageLevel

if TYPE_CHECKING:
    from patchbatch.domain.ports.messaging import Message, MessageSink

_LEVELS = {
    MessageLevel.INFO: logging.INFO,
    MessageLevel.ERROR: logging.ERROR,
}


@dataclass(slots=True)
class LoggingMessageSink:
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("patchbatch.messages"))

    def emit(self, message: Message) -> None:
        self.logger.log(_LEVELS[message.level], "%s", message.render())


@dataclass(slots=True)
class CollectingMessageSink:
    """Keep messages in memory, e.g. for callers that render them later."""

    messages: list[Message] = field(default_factory=list)

    def emit(self, message: Message) -> None:
        self.messages.append(message)


if TYPE_CHECKING:
    _logging_check: MessageSink = LoggingMessageSink()
    _collecting_check: MessageSink = CollectingMessageSink()
