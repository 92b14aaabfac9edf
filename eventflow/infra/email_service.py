import logging
import smtplib
import ssl
from email.message import EmailMessage
from smtplib import SMTPException, SMTPServerDisconnected
from ..config import AppConfig
from ..core.models import Event, Participant, entry_pass_payload

logger = logging.getLogger(__name__)


class EmailService:
    """
    Sends entry-pass e-mails.
    With SMTP_HOST=dev-log the message is only logged.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    def build_entry_pass_message(self, event: Event, participant: Participant) -> EmailMessage:
        subject = f"Your entry pass - {event.name}"
        team_line = f"- Team: {participant.team_name}\n" if participant.team_name else ""
        body = f"""Hello, {participant.name}!

Your registration for {event.name} is confirmed.

Event details:
- Date: {event.date}
- Location: {event.location}
{team_line}
Your entry pass code:

    {entry_pass_payload(participant)}

Present this code (or its QR image) at the entrance for check-in.
"""

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._config.smtp_from
        msg["To"] = participant.email
        msg.set_content(body)
        return msg

    def send_entry_pass(self, event: Event, participant: Participant) -> None:
        """
        Sends the entry pass to the participant's e-mail address.

        Raises:
            ValueError: participant has no e-mail
            SMTPException: delivery failed
        """
        if not participant.email or not participant.email.strip():
            logger.error(
                f"Entry pass e-mail without recipient: participant_id={participant.id}"
            )
            raise ValueError("participant.email must not be empty")

        msg = self.build_entry_pass_message(event, participant)

        if self._config.smtp_host == "dev-log":
            logger.warning(
                f"⚠️ DEV MODE: e-mail NOT sent (simulated only). "
                f"Configure SMTP_HOST to send real e-mails. "
                f"Recipient: {participant.email}"
            )
            logger.info(
                f"Entry pass e-mail (FAKE): to={msg['To']}, subject={msg['Subject']}\n"
                f"{msg.get_content()}"
            )
            return

        try:
            logger.info(
                f"Opening SMTP connection: host={self._config.smtp_host}, "
                f"port={self._config.smtp_port}, from={self._config.smtp_from}"
            )
            ssl_context = ssl.create_default_context()

            if self._config.smtp_port == 465:
                server = smtplib.SMTP_SSL(
                    self._config.smtp_host,
                    self._config.smtp_port,
                    timeout=30,
                    context=ssl_context,
                )
            else:
                server = smtplib.SMTP(
                    self._config.smtp_host,
                    self._config.smtp_port,
                    timeout=30,
                )

            # QUIT and close run even when STARTTLS fails
            with server:
                if self._config.smtp_user:
                    if self._config.smtp_port != 465:
                        server.starttls(context=ssl_context)
                    logger.debug(f"Authenticating SMTP: user={self._config.smtp_user}")
                    server.login(self._config.smtp_user, self._config.smtp_password)
                server.send_message(msg)

            logger.info(
                f"✅ Entry pass e-mail sent via SMTP: to={participant.email}, "
                f"host={self._config.smtp_host}, port={self._config.smtp_port}"
            )
        except SMTPServerDisconnected:
            logger.error(
                f"SMTP error: connection closed. "
                f"Check host={self._config.smtp_host}, port={self._config.smtp_port}, "
                f"user={self._config.smtp_user}"
            )
            raise
        except SMTPException as e:
            logger.error(
                f"SMTP error sending e-mail: to={participant.email}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )
            raise
