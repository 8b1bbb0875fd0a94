from abc import ABC, abstractmethod

class NotificationChannel(ABC):
    @abstractmethod
    async def send(self, recipient: str, subject: str, message: str, **kwargs) -> bool:
        """
        Base send method.
        Use **kwargs to handle channel-specific data like attachments.
        """
        pass
