from abc import ABC, abstractmethod


class SMSTransport(ABC):
    """Delivers a text to a phone number; True means the gateway accepted it."""

    @abstractmethod
    async def send_text(self, to_phone_number: str, body: str) -> bool:
        pass

    async def close(self) -> None:
        pass
