import ssl
import smtplib
import logging
from email.message import EmailMessage
from html import escape

from config import Settings

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────
def mask_address(address: str) -> str:
    return f"{(address or '')[:3]}***"

def _build_html_email(username: str, code: str, ttl_minutes: int) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #333;">Verify Your Email</h2>
  <p>Hi <strong>{escape(username)}</strong>,</p>
  <p>Your verification code is:</p>
  <div style="background: #f4f4f4; padding: 20px; text-align: center; font-size: 32px; font-weight: bold; letter-spacing: 8px; color: #333; border-radius: 8px; margin: 20px 0;">
    {code}
  </div>
  <p style="color: #666; font-size: 14px;">This code will expire in {ttl_minutes} minutes.</p>
  <p style="color: #666; font-size: 14px;">If you didn't request this code, please ignore this email.</p>
  <hr style="border: none; border-top: 1px solid #eee; margin: 30px 0;">
  <p style="color: #999; font-size: 12px;">Best regards,<br>Cartmate Team</p>
</div>
"""


class EmailNotifier:
    """SMTP delivery for verification codes. Raises on any delivery failure."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_pass
        self.sender = settings.email_from
        self.sender_name = settings.email_from_name
        self.ttl_minutes = settings.otp_ttl_minutes

    def _send_email(self, to: str, subject: str, body: str, html_body: str = None) -> None:
        if not all([self.host, self.port, self.user, self.password, self.sender]):
            raise RuntimeError("SMTP configuration missing")

        msg = EmailMessage()
        msg["From"] = f"{self.sender_name} <{self.sender}>"
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        if html_body:
            msg.add_alternative(html_body, subtype="html")

        context = ssl.create_default_context()
        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                server.login(self.user, self.password)
                server.send_message(msg, from_addr=self.sender, to_addrs=[to])
        else:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls(context=context)
                server.login(self.user, self.password)
                server.send_message(msg, from_addr=self.sender, to_addrs=[to])

    def send_verification_code(self, to: str, username: str, code: str) -> None:
        if not all([to, username, code]):
            raise ValueError("Missing required email parameters")

        logger.info(f"Sending verification code to {mask_address(to)}")
        plain_body = (
            f"Hi {username},\n\n"
            f"Your verification code is: {code}\n\n"
            f"This code will expire in {self.ttl_minutes} minutes.\n\n"
            f"If you didn't request this code, please ignore this email.\n\n"
            f"Best regards,\nCartmate Team"
        )
        self._send_email(
            to=to,
            subject="Verify Your Email - Cartmate",
            body=plain_body,
            html_body=_build_html_email(username, code, self.ttl_minutes),
        )
        logger.info(f"Verification code sent to {mask_address(to)}")
