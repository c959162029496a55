"""Sending e-mail through an SMTP relay configured from the environment."""

from __future__ import annotations

import os
import smtplib
from collections.abc import Mapping
from dataclasses import dataclass, field
from email.errors import HeaderParseError
from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import parseaddr

__all__ = [
    "DEFAULT_FROM_ADDRESS",
    "SMTP_SSL_PORT",
    "REQUIRED_VARIABLES",
    "InvalidAddressError",
    "Mailer",
    "check_environment_variables",
]

DEFAULT_FROM_ADDRESS = "crakit@example.com"
SMTP_SSL_PORT = 465
REQUIRED_VARIABLES = (
    "SMTP_FROM_ADDRESS",
    "SMTP_SERVER",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SEND_MAIL",
)


class InvalidAddressError(ValueError):
    """An e-mail address could not be parsed."""


def check_environment_variables(environ: Mapping[str, str] | None = None) -> list[str]:
    """Warn about missing or malformed mail settings; return the unset names."""
    env = os.environ if environ is None else environ
    unset = [name for name in REQUIRED_VARIABLES if name not in env]
    if unset:
        print(
            "Warning: Mailing disabled; the following variables must be set: "
            + ", ".join(unset)
        )
    send_mail = env.get("SEND_MAIL", "").lower()
    if send_mail not in ("true", "false"):
        print("Warning: SEND_MAIL must be `true` or `false`")
    return unset


def _parse_mailbox(value: str) -> Address:
    display_name, addr_spec = parseaddr(value)
    if not addr_spec or "@" not in addr_spec:
        raise InvalidAddressError(f"invalid email address: {value!r}")
    try:
        return Address(display_name=display_name, addr_spec=addr_spec)
    except (ValueError, HeaderParseError, IndexError) as exc:
        raise InvalidAddressError(f"invalid email address: {value!r}") from exc


@dataclass
class Mailer:
    """Sends multipart e-mails, or only logs them when sending is disabled."""

    from_address: str = DEFAULT_FROM_ADDRESS
    smtp_server: str = ""
    smtp_username: str = ""
    smtp_password: str = field(default="", repr=False)
    actually_send: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Mailer:
        """Build a mailer from the ``SMTP_*`` and ``SEND_MAIL`` variables."""
        env = os.environ if environ is None else environ
        check_environment_variables(env)
        return cls(
            from_address=env.get("SMTP_FROM_ADDRESS", DEFAULT_FROM_ADDRESS),
            smtp_server=env.get("SMTP_SERVER", ""),
            smtp_username=env.get("SMTP_USERNAME", ""),
            smtp_password=env.get("SMTP_PASSWORD", ""),
            actually_send=env.get("SEND_MAIL", "false").lower() == "true",
        )

    def build_message(self, to: str, subject: str, text: str, html: str) -> EmailMessage:
        """Build a plain-text/HTML alternative message for ``to``."""
        recipient = _parse_mailbox(to)
        sender = _parse_mailbox(self.from_address)
        message = EmailMessage()
        message["To"] = recipient
        message["From"] = sender
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> tuple[bool, str]:
        try:
            with smtplib.SMTP_SSL(self.smtp_server, SMTP_SSL_PORT) as smtp:
                smtp.login(self.smtp_username, self.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            return False, f"Err({exc})"
        return True, "Ok"

    def send(self, to: str, subject: str, text: str, html: str) -> bool:
        """Send the e-mail (or pretend to) and log it; return whether it succeeded."""
        message = self.build_message(to, subject, text, html)
        if self.actually_send:
            ok, result = self._deliver(message)
        else:
            ok, result = True, "Ok"
        print(
            "====================\n"
            f"Sent email {result}\n"
            "--------------------\n"
            f'to: "{to}"\n'
            f"from: {self.from_address}\n"
            "message:\n"
            f"{text}\n"
            "===================="
        )
        return ok