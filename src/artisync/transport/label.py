"""Stream short text labels over MIDI control change messages.

The host has no text channel to the remote, so a label is framed with three
controllers on one MIDI channel::

    CC 119 <length>     start, value = label length
    CC 118 <char>       one per character, 7-bit code
    CC 117 127          end

Characters outside 7-bit ASCII lose their high bits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import AsyncIterable, AsyncIterator, Iterable, List

LOGGER = logging.getLogger(__name__)

MAX_LABEL_CHARS = 64
MAX_VALUE = 0x7F
END_SENTINEL = 127
DEFAULT_CHANNEL = 15
CONTROL_CHANGE = 0xB0


class Controller(IntEnum):
    END = 117
    CHARACTER = 118
    START = 119


@dataclass(frozen=True, slots=True)
class ControlMessage:
    controller: Controller
    value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "controller", Controller(self.controller))
        if not 0 <= self.value <= MAX_VALUE:
            raise ValueError(f"Controller value out of range: {self.value}")

    def to_midi(self, channel: int = DEFAULT_CHANNEL) -> tuple[int, int, int]:
        return (CONTROL_CHANGE | (channel & 0x0F), int(self.controller), self.value)

    @classmethod
    def from_midi(
        cls, status: int, data1: int, data2: int, *, channel: int | None = None
    ) -> "ControlMessage | None":
        """Parse a raw MIDI message, ignoring anything that is not a framing CC."""
        if status & 0xF0 != CONTROL_CHANGE:
            return None
        if channel is not None and status & 0x0F != channel:
            return None
        try:
            controller = Controller(data1)
        except ValueError:
            return None
        return cls(controller, data2 & MAX_VALUE)


def start(length: int) -> ControlMessage:
    return ControlMessage(Controller.START, min(length, MAX_VALUE))


def character(char: str) -> ControlMessage:
    return ControlMessage(Controller.CHARACTER, ord(char) & MAX_VALUE)


def end() -> ControlMessage:
    return ControlMessage(Controller.END, END_SENTINEL)


def encode_label(label: str) -> List[ControlMessage]:
    name = label[:MAX_LABEL_CHARS]
    return [start(len(name)), *(character(char) for char in name), end()]


class LabelEncoder:
    """Sender side of one session; suppresses repeats of the previous label."""

    def __init__(self) -> None:
        self.last_label = ""

    def encode(self, label: str) -> List[ControlMessage]:
        if not label or label == self.last_label:
            return []
        self.last_label = label
        return encode_label(label)

    def reset(self) -> None:
        self.last_label = ""


class DecoderState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class LabelDecoder:
    """Receiver side of one stream.

    A new start discards any unfinished frame; stray characters and ends
    outside a frame are dropped.
    """

    def __init__(self) -> None:
        self.state = DecoderState.IDLE
        self.expected_length = 0
        self._chars: List[str] = []

    @property
    def pending(self) -> str:
        return "".join(self._chars)

    def reset(self) -> None:
        self.state = DecoderState.IDLE
        self.expected_length = 0
        self._chars = []

    def feed(self, message: ControlMessage) -> str | None:
        """Consume one message; return the label when a frame completes."""
        if message.controller is Controller.START:
            if self.state is DecoderState.ACCUMULATING:
                LOGGER.debug("Discarding partial label %r", self.pending)
            self._chars = []
            self.expected_length = message.value
            self.state = DecoderState.ACCUMULATING
            return None

        if self.state is DecoderState.IDLE:
            LOGGER.debug("Dropping %s outside a frame", message.controller.name)
            return None

        if message.controller is Controller.CHARACTER:
            self._chars.append(chr(message.value))
            return None

        if message.value != END_SENTINEL:
            LOGGER.debug("Ignoring end marker with value %d", message.value)
            return None

        label = self.pending
        if len(label) != self.expected_length:
            LOGGER.debug("Label %r has %d chars, header said %d", label, len(label), self.expected_length)
        self.reset()
        return label

    def feed_many(self, messages: Iterable[ControlMessage]) -> List[str]:
        labels = []
        for message in messages:
            label = self.feed(message)
            if label is not None:
                labels.append(label)
        return labels


async def decode_stream(
    messages: AsyncIterable[ControlMessage], decoder: LabelDecoder | None = None
) -> AsyncIterator[str]:
    """Yield completed labels from an asynchronous message stream in arrival order."""
    decoder = decoder or LabelDecoder()
    async for message in messages:
        label = decoder.feed(message)
        if label is not None:
            yield label
