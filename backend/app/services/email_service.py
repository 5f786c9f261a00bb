"""
PetNet Backend: SMTP Email Notification Service
=================================================

What:  NotificationSink that emails the requester when their request changes state.
How:   Builds an EmailMessage and sends it with smtplib in a worker thread, so
       the event loop is never blocked by the SMTP handshake. Transient failures
       are retried with tenacity (exponential backoff + jitter).
Who:   Singleton used by the requests router; tests construct their own instance.

Resilience Strategy:
    1. Tenacity retry for connection drops, timeouts and 4xx SMTP replies;
       permanent failures (5xx, refused recipients) fail on the first attempt
    2. Exhausted retries become NotificationError (logged by the caller,
       reported as notification.status="failed")
    3. Missing SMTP credentials or NOTIFICATIONS_ENABLED=false turn the
       sink off; the lifecycle then reports "skipped"
"""

import asyncio
import logging
import smtplib
import time
import uuid
from email.message import EmailMessage
from typing import Optional

from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings, settings as default_settings
from app.exceptions import NotificationError
from app.models.adoption_request import RequestState
from app.services.notification_base import NotificationSink

logger = logging.getLogger(__name__)

SUBJECT = "Update on your adoption request"

# Past-tense wording used in the email body.
STATE_WORDING = {
    RequestState.PENDING: "moved back to pending",
    RequestState.APPROVED: "approved",
    RequestState.REJECTED: "rejected",
}

# Network drops and 4xx replies are worth another attempt; 5xx replies
# (bad credentials, refused recipients) are not.
TRANSIENT_ERRORS = (ConnectionError, TimeoutError, smtplib.SMTPServerDisconnected)


def is_transient(error: BaseException) -> bool:
    if isinstance(error, smtplib.SMTPResponseException):
        return 400 <= error.smtp_code < 500
    return isinstance(error, TRANSIENT_ERRORS)


def build_status_message(
    sender: str,
    recipient_email: str,
    recipient_name: str,
    pet_name: str,
    new_state: RequestState,
) -> EmailMessage:
    """Compose the plain-text status-change email."""
    message = EmailMessage()
    message["Subject"] = SUBJECT
    message["From"] = sender
    message["To"] = recipient_email
    wording = STATE_WORDING.get(new_state, new_state.value)
    message.set_content(
        f"Hello {recipient_name},\n\n"
        f"Your adoption request for {pet_name} has been {wording}.\n\n"
        "Thank you for using our platform.\n\n"
        "The PetNet team\n"
    )
    return message


class EmailNotificationService(NotificationSink):
    """
    SMTP implementation of the notification sink.

    Configuration comes from Settings (SMTP_HOST, SMTP_PORT, SMTP_USERNAME,
    SMTP_PASSWORD, SMTP_USE_TLS, MAIL_SENDER, RETRY_*). A Settings instance
    can be injected for tests.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self._send_with_retry = self._build_retrying_sender()

    @property
    def enabled(self) -> bool:
        return self.config.notifications_enabled and self.config.smtp_configured

    def _build_retrying_sender(self):
        # Retry policy depends on the injected config, so the decorator is
        # applied per instance rather than at class definition time.
        return retry(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(self.config.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.config.retry_min_wait,
                max=self.config.retry_max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )(self._send)

    async def notify(
        self,
        recipient_email: str,
        recipient_name: str,
        pet_name: str,
        new_state: RequestState,
    ) -> None:
        if not self.enabled:
            logger.info(
                "Email delivery disabled; not notifying %s about %s (%s)",
                recipient_email,
                pet_name,
                new_state.value,
            )
            return

        message = build_status_message(
            sender=self.config.mail_sender,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            pet_name=pet_name,
            new_state=new_state,
        )
        mail_id = str(uuid.uuid4())[:8]

        try:
            await self._send_with_retry(message, mail_id)
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error(
                "[%s] Email to %s failed after %d attempts: %s",
                mail_id,
                recipient_email,
                self.config.retry_max_attempts,
                last,
            )
            raise NotificationError(
                context={
                    "mail_id": mail_id,
                    "attempts": self.config.retry_max_attempts,
                    "error_type": type(last).__name__ if last else None,
                }
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error("[%s] Email to %s rejected: %s", mail_id, recipient_email, e)
            raise NotificationError(
                context={
                    "mail_id": mail_id,
                    "attempts": 1,
                    "error_type": type(e).__name__,
                }
            ) from e

    async def _send(self, message: EmailMessage, mail_id: str) -> None:
        start_time = time.time()
        try:
            await asyncio.to_thread(self._deliver, message)
        except Exception as e:
            logger.warning(
                "[%s] SMTP send failed after %.0fms: %s",
                mail_id,
                (time.time() - start_time) * 1000,
                e,
            )
            raise
        logger.info(
            "[%s] Status email sent to %s in %.0fms",
            mail_id,
            message["To"],
            (time.time() - start_time) * 1000,
        )

    def _deliver(self, message: EmailMessage) -> None:
        """Blocking SMTP exchange; runs in a worker thread."""
        with smtplib.SMTP(
            self.config.smtp_host,
            self.config.smtp_port,
            timeout=self.config.smtp_timeout,
        ) as server:
            if self.config.smtp_use_tls:
                server.starttls()
            server.login(self.config.smtp_username, self.config.smtp_password)
            server.send_message(message)


# ── Singleton Instance ────────────────────────────────────────────────────
email_service = EmailNotificationService()
