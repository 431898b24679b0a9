"""Mailbox service: persisted outbound email queue and its flush/cleanup jobs."""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wayfarer.models.email_box import EmailBox
from wayfarer.services.attachments import AttachmentLoader, attachment_loader as default_loader
from wayfarer.services.mailer import Mailer, mailer as default_mailer

logger = logging.getLogger(__name__)


class MailboxService:
    """Queues messages and hands them to the mailer from the scheduled jobs."""

    def __init__(self, mailer: Mailer | None = None, attachment_loader: AttachmentLoader | None = None):
        self.mailer = mailer or default_mailer
        self.attachment_loader = attachment_loader or default_loader

    async def save_email(
        self,
        db: AsyncSession,
        to_name: str,
        to_address: str,
        subject: str,
        content: str,
        attachments: list[dict] | None = None,
    ) -> EmailBox:
        """Queue a message. The caller owns the commit."""
        email = EmailBox(
            to_name=to_name,
            to_address=to_address,
            subject=subject,
            content=content,
            attachments=attachments or [],
            sent=False,
        )
        db.add(email)
        await db.flush()
        return email

    async def flush_unsent(self, db: AsyncSession) -> int:
        """Send every unsent message; one failure does not block the rest."""
        result = await db.execute(
            select(EmailBox).where(EmailBox.sent == False).order_by(EmailBox.created_at)  # noqa: E712
        )
        emails = result.scalars().all()
        if not emails:
            logger.debug("No unsent emails found")
            return 0

        # Rollback expires loaded rows, so read everything up front
        pending = [
            (e.id, e.to_name, e.to_address, e.subject, e.content, list(e.attachments or []))
            for e in emails
        ]

        sent = 0
        for email_id, to_name, to_address, subject, content, specs in pending:
            try:
                files = await self.attachment_loader.load(specs) if specs else []
                await self.mailer.send(to_name, to_address, subject, content, attachments=files)
                await db.execute(
                    update(EmailBox)
                    .where(EmailBox.id == email_id)
                    .values(sent=True, sent_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
                sent += 1
            except Exception as e:
                await db.rollback()
                logger.error(f"Failed to send email {email_id} to {to_address}: {e}")

        return sent

    async def delete_sent(self, db: AsyncSession) -> int:
        result = await db.execute(
            delete(EmailBox)
            .where(EmailBox.sent == True)  # noqa: E712
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        count = result.rowcount or 0
        if count:
            logger.info(f"Deleted {count} sent emails")
        return count


mailbox_service = MailboxService()
