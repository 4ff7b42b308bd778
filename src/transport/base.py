"""MessageTransport protocol — the send capability the dispatcher depends on."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageTransport(Protocol):
    """Protocol that every outbound messaging transport must satisfy."""

    @property
    def name(self) -> str:
        """Unique transport identifier (e.g. 'whatsapp')."""
        ...

    @property
    def ready(self) -> bool:
        """Whether the transport is currently connected and able to send."""
        ...

    async def send(self, address: str, body: str) -> bool:
        """Deliver *body* to a canonical *address*. Returns True on success."""
        ...
