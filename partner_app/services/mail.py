import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from jinja2 import Environment, FileSystemLoader, select_autoescape

from partner_app.core.config import Settings, settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class MailKind(str, enum.Enum):
    OTP = "otp"
    WELCOME = "welcome"


SUBJECTS = {
    MailKind.OTP: "Your OTP Code - Partner App",
    MailKind.WELCOME: "Welcome to Partner App!",
}


@dataclass
class MailResult:
    success: bool
    message: str
    message_id: Optional[str] = None


def build_connection_config(config: Settings) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=config.MAIL_USERNAME,
        MAIL_PASSWORD=config.MAIL_PASSWORD,
        MAIL_FROM=config.mail_sender,
        MAIL_FROM_NAME=config.MAIL_FROM_NAME,
        MAIL_PORT=config.MAIL_PORT,
        MAIL_SERVER=config.MAIL_SERVER,
        MAIL_STARTTLS=config.MAIL_STARTTLS,
        MAIL_SSL_TLS=config.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(config.MAIL_USERNAME),
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=1 if config.MAIL_SUPPRESS_SEND else 0,
    )


class MailGateway:
    """Renders the transactional templates and hands them to the SMTP provider."""

    def __init__(self, config: Settings = settings):
        self.fm = FastMail(build_connection_config(config))
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, kind: MailKind, variables: Dict[str, Any]) -> str:
        context = {"year": datetime.now().year, **variables}
        return self.env.get_template(f"{kind.value}.html").render(**context)

    async def send_templated_email(
        self, kind: MailKind, recipient: str, variables: Dict[str, Any]
    ) -> MailResult:
        """
        Send one templated email.

        Transport errors are logged and reported through ``MailResult``;
        they are never raised to the caller.
        """
        ref = uuid.uuid4().hex
        try:
            message = MessageSchema(
                subject=SUBJECTS[kind],
                recipients=[recipient],
                body=self.render(kind, variables),
                subtype=MessageType.html,
                headers={"X-Message-Ref": ref},
            )
            await self.fm.send_message(message)
        except Exception as e:
            logger.error("Failed to send %s email to %s: %s", kind.value, recipient, e)
            return MailResult(success=False, message=f"Failed to send email: {e}")

        logger.info("%s email sent to %s (ref %s)", kind.value, recipient, ref)
        return MailResult(success=True, message="Email sent successfully", message_id=ref)

    async def send_otp(self, email: str, code: str, name: Optional[str] = None) -> MailResult:
        return await self.send_templated_email(
            MailKind.OTP, email, {"name": name or "User", "otp": code, "ttl_minutes": settings.OTP_TTL_SECONDS // 60}
        )

    async def send_welcome(self, email: str, name: str) -> MailResult:
        return await self.send_templated_email(MailKind.WELCOME, email, {"name": name})
