import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional
from app.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html: str, text: Optional[str] = None, from_name: Optional[str] = None):
    """Send an email via SMTP.

    Returns False without sending when SMTP is not configured. Transport
    errors propagate; callers decide whether delivery is fatal.
    """
    if not settings.smtp_server:
        logger.warning("SMTP not configured; skipping email %r to %s", subject, to_email)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((from_name or settings.mail_from_name, settings.mail_from))
    msg["To"] = to_email
    if text:
        msg.attach(MIMEText(text, "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))

    # Add timeout to prevent indefinite hangs
    with smtplib.SMTP(settings.smtp_server, settings.smtp_port, timeout=30) as server:
        server.starttls()
        if settings.smtp_user:
            server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.mail_from, [to_email], msg.as_string())
    return True


def send_otp_email(to_email: str, otp: str, minutes: int) -> bool:
    name = settings.app_name
    text = f"Your OTP for password reset is: {otp}. This OTP is valid for {minutes} minutes."
    html = f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <title>{name} Password Reset</title>
</head>
<body>
    <h2>{name} Password Reset</h2>
    <p>Your OTP for password reset is: <strong>{otp}</strong></p>
    <p>This OTP is valid for {minutes} minutes. If you didn't request a password reset, you can safely ignore this message.</p>
</body>
</html>
'''
    return send_email(to_email, f"{name} Password Reset", html, text=text)
