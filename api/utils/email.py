import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import requests

from errors import EmailDeliveryError

logger = logging.getLogger(__name__)

MAILGUN_URL = "https://api.mailgun.net/v3/{domain}/messages"

_BOX = '<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #0f172a;">{body}</div>'


class Mailer:
    """
    Outbound email. Tries the Mailgun HTTP API first and falls back to SMTP.
    Raises EmailDeliveryError when neither transport delivers the message.
    """

    def __init__(self, from_email=None, mailgun_api_key=None, mailgun_domain=None,
                 smtp_server=None, smtp_port=587, smtp_username=None, smtp_password=None,
                 timeout=10):
        self.from_email = from_email or smtp_username
        self.mailgun_api_key = mailgun_api_key
        self.mailgun_domain = mailgun_domain
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.timeout = timeout

        if not self.mailgun_configured and not self.smtp_configured:
            logger.warning("No email transport configured. Set MAILGUN_* or SMTP_* to enable email sending.")

    @classmethod
    def from_settings(cls, settings):
        return cls(
            from_email=settings.FROM_EMAIL,
            mailgun_api_key=settings.MAILGUN_API_KEY,
            mailgun_domain=settings.MAILGUN_DOMAIN,
            smtp_server=settings.SMTP_SERVER,
            smtp_port=settings.SMTP_PORT,
            smtp_username=settings.SMTP_USERNAME,
            smtp_password=settings.SMTP_PASSWORD,
        )

    @property
    def mailgun_configured(self) -> bool:
        return bool(self.mailgun_api_key and self.mailgun_domain)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_server and self.smtp_username and self.smtp_password)

    def send(self, to_email: str, subject: str, html: str, text: str | None = None):
        text = text or subject
        errors = []

        if self.mailgun_configured:
            try:
                self._send_via_mailgun(to_email, subject, html, text)
                return
            except (requests.RequestException, RuntimeError) as e:
                logger.error(f"Mailgun failed: {e}")
                errors.append(e)

        if self.smtp_configured:
            try:
                self._send_via_smtp(to_email, subject, html, text)
                return
            except (smtplib.SMTPException, OSError) as e:
                logger.error(f"SMTP failed: {e}")
                errors.append(e)

        if not errors:
            logger.error(f"Cannot send '{subject}' to {to_email}: no email transport configured")
        raise EmailDeliveryError()

    def _send_via_mailgun(self, to_email, subject, html, text):
        logger.info(f"Sending '{subject}' to {to_email} via Mailgun API")
        response = requests.post(
            MAILGUN_URL.format(domain=self.mailgun_domain),
            auth=("api", self.mailgun_api_key),
            data={
                "from": self.from_email,
                "to": to_email,
                "subject": subject,
                "text": text,
                "html": html,
            },
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise RuntimeError(f"Mailgun error: {response.status_code} {response.text}")

    def _send_via_smtp(self, to_email, subject, html, text):
        logger.info(f"Sending '{subject}' to {to_email} via SMTP")
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.from_email
        message["To"] = to_email
        message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.sendmail(self.from_email, [to_email], message.as_string())

    ### Templates
    def send_verification_email(self, to_email: str, verification_link: str):
        html = _BOX.format(body=f"""
      <h2 style="margin: 0 0 12px 0;">Verify your email</h2>
      <p style="margin: 0 0 16px 0;">Thanks for registering. Please confirm your email to continue.</p>
      <a href="{verification_link}" style="display:inline-block;padding:12px 18px;background:#111827;color:#ffffff;text-decoration:none;border-radius:8px;font-weight:600;">
        Verify Email
      </a>""")
        self.send(to_email, "Verify your email", html,
                  text=f"Welcome! Please verify your email to continue:\n\n{verification_link}")

    def send_otp_email(self, to_email: str, code: str):
        html = _BOX.format(body=f"""
      <h2 style="margin: 0 0 12px 0;">Login verification</h2>
      <p style="margin: 0 0 12px 0;">Use this code to finish signing in:</p>
      <div style="font-size: 28px; font-weight: 700; letter-spacing: 6px; margin: 16px 0; color: #111827;">{code}</div>
      <p style="margin: 0;">This code expires in 5 minutes.</p>""")
        self.send(to_email, "Your login code", html,
                  text=f"Your login code is: {code}\n\nThis code expires in 5 minutes.")

    def send_accounts_email(self, to_email: str, demo_login: str | None, real_login: str | None = None):
        if real_login:
            real_line = f"<li><strong>Live account:</strong> {real_login}</li>"
        else:
            real_line = "<li><strong>Live account:</strong> Pending KYC approval</li>"
        html = _BOX.format(body=f"""
      <h2 style="margin: 0 0 12px 0;">Accounts created</h2>
      <p style="margin: 0 0 12px 0;">Your demo account is ready. Live account will be available after KYC.</p>
      <ul style="padding-left: 18px; margin: 0 0 12px 0;">
        {real_line}
        <li><strong>Demo account:</strong> {demo_login or ""}</li>
      </ul>
      <p style="margin: 0;">Use the password you set during registration to log in.</p>""")
        self.send(to_email, "Your trading accounts", html)
