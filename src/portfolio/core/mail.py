import smtplib
from email.message import EmailMessage

from portfolio.shared import Logger, load_config
from portfolio.shared.config import Mail

logger = Logger(__name__).get_logger()

config = load_config()


class MailError(Exception):
    """The mail transport could not deliver a message."""


class Mailer:
    def send(self, email: str, subject: str, message: str) -> None:
        raise NotImplementedError


class LogMailer(Mailer):
    """Writes outgoing mail to the log instead of delivering it."""

    def send(self, email: str, subject: str, message: str) -> None:
        logger.info("Mail to %s | %s\n%s", email, subject, message)


class SmtpMailer(Mailer):
    def __init__(self, settings: Mail):
        if not (settings.host and settings.sender):
            raise ValueError("SMTP mailer needs mail.host and mail.sender")
        self.settings = settings

    def build_message(self, email: str, subject: str, message: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.sender
        msg["To"] = email
        msg.set_content(message)
        return msg

    def send(self, email: str, subject: str, message: str) -> None:
        s = self.settings
        msg = self.build_message(email, subject, message)
        try:
            if s.use_ssl or s.port == 465:
                with smtplib.SMTP_SSL(s.host, s.port, timeout=s.timeout) as server:
                    if s.username:
                        server.login(s.username, s.password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as server:
                    if s.use_tls:
                        server.starttls()
                    if s.username:
                        server.login(s.username, s.password)
                    server.send_message(msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP auth failed for %s", s.username)
            raise MailError("SMTP authentication failed") from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error while sending email to %s: %s", email, e)
            raise MailError(f"Could not send email to {email}") from e

        logger.info("Sent '%s' to %s", subject, email)


def get_mailer() -> Mailer:
    if config.mail.backend == "smtp":
        return SmtpMailer(config.mail)
    return LogMailer()
