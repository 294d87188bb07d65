"""Delivers one-time codes to users by e-mail."""

import smtplib
from email.message import EmailMessage
from typing import Mapping, Optional

from jinja2 import Environment, PackageLoader, select_autoescape
from retry import retry

from arxiv.base import logging

from .exceptions import NotificationFailed

logger = logging.getLogger(__name__)


class MailSession(object):
    """An open session with an SMTP service."""

    def __init__(self, host: str = "", port: int = 0,
                 user: Optional[str] = None, password: Optional[str] = None,
                 use_tls: bool = True) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._use_tls = use_tls

    def _authenticate(self, conn: smtplib.SMTP) -> None:
        if self._use_tls:
            conn.starttls()
        if self._user:
            conn.login(self._user, self._password or '')

    @retry((smtplib.SMTPException, OSError), tries=3, delay=0.5, backoff=2)
    def send_message(self, message: EmailMessage) -> None:
        """Send a message, opening a fresh connection for it."""
        with smtplib.SMTP(host=self._host, port=self._port,
                          timeout=10) as conn:
            self._authenticate(conn)
            conn.send_message(message)


class Notifier:
    """
    Sends verification, password reset and login codes.

    When ``suppress`` is set, messages are rendered and logged (without the
    code) but never sent.
    """

    ACCENTS = {
        'verification.html': '#28a745',
        'password_reset.html': '#dc3545',
        'login_otp.html': '#007bff',
    }

    def __init__(self, session: MailSession, sender: str,
                 suppress: bool = False, code_expiry: int = 600) -> None:
        self.session = session
        self.sender = sender
        self.suppress = suppress
        self.code_expiry = code_expiry
        self._env = Environment(
            loader=PackageLoader('identity', 'templates/mail'),
            autoescape=select_autoescape(['html'])
        )

    @classmethod
    def from_config(cls, config: Mapping) -> 'Notifier':
        session = MailSession(host=config.get('SMTP_HOST', 'localhost'),
                              port=config.get('SMTP_PORT', 587),
                              user=config.get('SMTP_USER'),
                              password=config.get('SMTP_PASS'),
                              use_tls=config.get('SMTP_USE_TLS', True))
        return cls(session, config.get('SMTP_FROM', 'noreply@example.com'),
                   suppress=config.get('MAIL_SUPPRESS_SEND', False),
                   code_expiry=config.get('OTP_EXPIRY', 600))

    def send_verification_otp(self, email: str, code: str) -> None:
        self._send(email, 'Verify Your Email Address', 'verification.html',
                   code)

    def send_password_reset_otp(self, email: str, code: str) -> None:
        self._send(email, 'Reset Your Password', 'password_reset.html', code)

    def send_login_otp(self, email: str, code: str) -> None:
        self._send(email, 'Your OTP Code', 'login_otp.html', code)

    def render(self, template: str, code: str) -> str:
        """Render the HTML body of a message."""
        return self._env.get_template(template).render(
            code=code,
            accent=self.ACCENTS.get(template, '#333'),
            expires_in_minutes=max(1, self.code_expiry // 60)
        )

    def _send(self, email: str, subject: str, template: str,
              code: str) -> None:
        message = EmailMessage()
        message['Subject'] = subject
        message['From'] = self.sender
        message['To'] = email
        message.set_content(f'Your code is {code}. It expires in '
                            f'{max(1, self.code_expiry // 60)} minutes.')
        message.add_alternative(self.render(template, code), subtype='html')

        if self.suppress:
            logger.info('Mail suppressed: "%s" to %s', subject, email)
            return
        try:
            self.session.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error('Failed to send "%s" to %s: %s', subject, email, e)
            raise NotificationFailed(f'Failed to send {template}') from e
        logger.info('Sent "%s" to %s', subject, email)
