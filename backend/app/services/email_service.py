"""
Transactional email for registration and verification.

Delivery is best-effort: every send returns a NotificationResult and never
raises, so a mail outage cannot fail the request that triggered it.
"""
import html
import logging
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Awaitable, Callable, Optional

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)

APP_NAME = "Student Freelancer Workplace"

Transport = Callable[[MIMEMultipart], Awaitable[object]]

_STYLE = """
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6;
               color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f8f9fa; }
        .container { background: white; padding: 30px; border-radius: 10px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); }
        .header { text-align: center; margin-bottom: 30px; }
        .button { display: inline-block; padding: 12px 30px; background: #667eea; color: white;
                  text-decoration: none; border-radius: 5px; margin: 20px 0; }
        .footer { text-align: center; margin-top: 30px; color: #999; font-size: 0.9em; }
"""


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailService:
    """Service for sending emails via SMTP"""

    def __init__(self, transport: Optional[Transport] = None, enabled: bool = settings.EMAIL_ENABLED):
        self._transport = transport or self._smtp_send
        self.enabled = enabled

    async def send_registration_notice(self, to_email: str, name: str) -> NotificationResult:
        """Welcome email sent once a registration has been stored"""
        subject = f"🎉 Welcome to {APP_NAME}!"
        safe_name = html.escape(name)
        frontend_url = settings.FRONTEND_URL

        html_body = f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Registration Successful</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Welcome to {APP_NAME}!</h1>
        </div>
        <p>Hi {safe_name},</p>
        <p>Your registration has been completed successfully! You're now part of our growing
        community of student freelancers.</p>
        <h3>What you can do now:</h3>
        <ul>
            <li>Complete your profile with skills and portfolio</li>
            <li>Browse available projects and opportunities</li>
            <li>Connect with potential clients</li>
            <li>Showcase your work and expertise</li>
        </ul>
        <div style="text-align: center;">
            <a href="{frontend_url}" class="button">Get Started</a>
        </div>
        <div class="footer">
            <p>Best regards,<br>The {APP_NAME} Team</p>
        </div>
    </div>
</body>
</html>
"""

        text_body = f"""
Welcome to {APP_NAME}!

Hi {name},

Your registration has been completed successfully! You're now part of our growing community of student freelancers.

What you can do now:
- Complete your profile with skills and portfolio
- Browse available projects and opportunities
- Connect with potential clients
- Showcase your work and expertise

Next steps:
1. Log in to your account
2. Upload your portfolio items
3. Set your hourly rates
4. Start applying for projects

Get started at: {frontend_url}

Best regards,
The {APP_NAME} Team
"""

        return await self._send_email(to_email, subject, html_body, text_body, kind="registration")

    async def send_verification_notice(self, to_email: str, name: str, token: str) -> NotificationResult:
        """Email carrying the verification link for the given token"""
        subject = f"🔐 Verify Your Email - {APP_NAME}"
        link = self.verification_link(token)
        safe_name = html.escape(name)
        safe_link = html.escape(link, quote=True)

        html_body = f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Verify Your Email</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Verify Your Email</h1>
        </div>
        <p>Hi {safe_name},</p>
        <p>Please confirm your email address by clicking the button below:</p>
        <div style="text-align: center;">
            <a href="{safe_link}" class="button">Verify Email</a>
        </div>
        <p>Or copy and paste this link into your browser:</p>
        <p>{safe_link}</p>
        <p>This link will expire in 24 hours.</p>
        <div class="footer">
            <p>If you didn't create an account, you can safely ignore this email.</p>
        </div>
    </div>
</body>
</html>
"""

        text_body = f"""
Verify Your Email - {APP_NAME}

Hi {name},

Please confirm your email address by opening the link below:

{link}

This link will expire in 24 hours.

If you didn't create an account, you can safely ignore this email.
"""

        return await self._send_email(to_email, subject, html_body, text_body, kind="verification")

    @staticmethod
    def verification_link(token: str) -> str:
        return f"{settings.FRONTEND_URL.rstrip('/')}/verify?token={token}"

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        kind: str,
    ) -> NotificationResult:
        if not self.enabled:
            logger.info(f"Email disabled, skipped {kind} email to {to_email}")
            return NotificationResult(success=False, error="email disabled")

        message = MIMEMultipart("alternative")
        message["From"] = settings.EMAIL_FROM
        message["To"] = to_email
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain="studentfreelancer.dev")

        # Plain text first; clients render the last part they support
        message.attach(MIMEText(text_body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            await self._transport(message)
        except Exception as e:
            logger.error(f"Failed to send {kind} email to {to_email}: {str(e)}")
            return NotificationResult(success=False, error=str(e))

        logger.info(f"{kind.capitalize()} email sent successfully to {to_email}")
        return NotificationResult(success=True, message_id=message["Message-ID"])

    @staticmethod
    async def _smtp_send(message: MIMEMultipart):
        return await aiosmtplib.send(
            message,
            hostname=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            username=settings.EMAIL_USER,
            password=settings.EMAIL_PASS,
            start_tls=True,
        )


email_service = EmailService()
