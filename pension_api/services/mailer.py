import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from flask import current_app

logger = logging.getLogger(__name__)


def send_mail(to: str, subject: str, body: str, reply_to: Optional[str] = None) -> bool:
    """
    Plain-text mail over SMTP with STARTTLS. Returns False when mail is not
    configured or delivery fails; callers never fail a request on it.
    """
    cfg = current_app.config
    host = cfg.get("SMTP_HOST")
    if not host or not to:
        logger.info("mail not configured, skipping %r", subject)
        return False

    msg = EmailMessage()
    msg["From"] = cfg.get("MAIL_FROM")
    msg["To"] = to
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, int(cfg.get("SMTP_PORT", 587)), timeout=10) as smtp:
            smtp.starttls()
            if cfg.get("SMTP_USER"):
                smtp.login(cfg["SMTP_USER"], cfg.get("SMTP_PASS") or "")
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("mail to %s failed: %s", to, e)
        return False
    return True


def send_enquiry_notification(enquiry) -> bool:
    body = "\n".join([
        f"Tracking ID: {enquiry.tracking_id}",
        f"Name: {enquiry.full_name}",
        f"Email: {enquiry.email}",
        f"Phone: {enquiry.phone or 'Not provided'}",
        f"Subject: {enquiry.subject}",
        "",
        enquiry.message,
    ])
    return send_mail(current_app.config.get("MAIL_TO"), f"New Enquiry: {enquiry.subject}", body,
                     reply_to=enquiry.email)
