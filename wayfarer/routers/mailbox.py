"""Mailbox router: users write to the support inbox; the mail flush job delivers."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wayfarer.config import settings
from wayfarer.database import get_db
from wayfarer.dependencies import get_current_user
from wayfarer.models.user import User
from wayfarer.schemas.mailbox import ComposeEmailRequest
from wayfarer.services.attachments import build_attachment_specs
from wayfarer.services.email_templates import CONTACT_US_TEMPLATE, render_template
from wayfarer.services.mailbox_service import mailbox_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
async def compose_email(
    req: ComposeEmailRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    reply_link = f"mailto:{user.email}?subject={quote('Re: ' + req.subject)}"
    html = render_template(
        CONTACT_US_TEMPLATE,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        message=req.content,
        reply_link=reply_link,
    )
    email = await mailbox_service.save_email(
        db,
        to_name=settings.mail_from_name,
        to_address=settings.contact_email,
        subject=req.subject,
        content=html,
        attachments=build_attachment_specs(req.file_paths),
    )
    email_id = email.id
    await db.commit()
    logger.info(f"Queued contact message {email_id} from {user.email}")
    return {"ok": True, "id": str(email_id)}
