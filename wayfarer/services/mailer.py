"""SMTP mailer: delivers one message per call."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from wayfarer.config import settings
from wayfarer.services.attachments import Attachment

logger = logging.getLogger(__name__)


class MailerNotConfigured(RuntimeError):
    pass


class Mailer:
    """Sends HTML email over SMTP (implicit TLS, STARTTLS or plain)."""

    def build_message(
        self,
        to_name: str,
        to_address: str,
        subject: str,
        html: str,
        attachments: list[Attachment] | None = None,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((settings.mail_from_name, settings.mail_from))
        msg["To"] = formataddr((to_name, to_address))
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")
        for attachment in attachments or []:
            maintype, _, subtype = attachment.content_type.partition("/")
            msg.add_attachment(
                attachment.content,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return msg

    def _open(self) -> smtplib.SMTP:
        if settings.smtp_tls:
            return smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port)
        smtp = smtplib.SMTP(settings.smtp_host, settings.smtp_port)
        try:
            smtp.ehlo()
            # Plain relays (e.g. a local MailHog) do not offer STARTTLS
            if settings.smtp_starttls and smtp.has_extn("starttls"):
                smtp.starttls()
                smtp.ehlo()
        except (smtplib.SMTPException, OSError):
            smtp.close()
            raise
        return smtp

    def _deliver(self, msg: EmailMessage) -> None:
        with self._open() as smtp:
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(msg)

    async def send(
        self,
        to_name: str,
        to_address: str,
        subject: str,
        html: str,
        attachments: list[Attachment] | None = None,
    ) -> None:
        if not settings.smtp_configured:
            logger.warning(f"SMTP not configured, cannot send email to {to_address}")
            raise MailerNotConfigured("SMTP host is not configured")

        msg = self.build_message(to_name, to_address, subject, html, attachments)
        # smtplib blocks; keep it off the event loop
        await asyncio.to_thread(self._deliver, msg)
        logger.info(f"Email sent to {to_address}: {subject}")


mailer = Mailer()
