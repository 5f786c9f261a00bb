"""
PetNet Backend: Abstract Notification Sink
============================================

What:  Contract for telling a requester that their adoption request changed state.
How:   Concrete sinks (EmailNotificationService) implement notify(). The request
       lifecycle depends only on this interface, so tests pass an AsyncMock or
       a recording fake instead of a real SMTP connection.
Who:   Called by AdoptionRequestService.change_status after the transaction commits.
"""

from abc import ABC, abstractmethod

from app.models.adoption_request import RequestState


class NotificationSink(ABC):
    """
    Abstract interface for status-change notifications.

    Contract:
        - notify() is only called after the state change has been committed
        - Implementations handle their own retries
        - Delivery failures are raised as NotificationError; the caller reports
          them and never rolls back
    """

    @property
    def enabled(self) -> bool:
        """Whether notify() will actually deliver anything. False means 'skip'."""
        return True

    @abstractmethod
    async def notify(
        self,
        recipient_email: str,
        recipient_name: str,
        pet_name: str,
        new_state: RequestState,
    ) -> None:
        """
        Tell the requester that their request for `pet_name` is now `new_state`.

        Raises:
            NotificationError: Delivery failed after all retries.
        """
        ...
