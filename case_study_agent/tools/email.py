"""
Email delivery through Composio's Gmail integration.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from composio import Composio
from langchain_core.tools import tool

from ..exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class GmailSender:
    """Sends mail as a connected Composio user."""

    def __init__(
        self,
        client: Optional[Composio] = None,
        api_key: Optional[str] = None,
        user_id: str = "default",
    ):
        self._client = client
        self.api_key = api_key
        self.user_id = user_id

    @property
    def client(self) -> Composio:
        if self._client is None:
            self._client = Composio(api_key=self.api_key)
        return self._client

    def send(self, recipient: str, subject: str, body: str) -> Dict[str, Any]:
        args = {"recipient_email": recipient, "subject": subject, "body": body}
        try:
            result = self.client.tools.execute(
                slug="GMAIL_SEND_EMAIL",
                arguments=args,
                user_id=self.user_id,
                dangerously_skip_version_check=True,
            )
        except Exception as e:
            raise UpstreamServiceError(str(e), service="gmail") from e

        if isinstance(result, dict) and not result.get("successful", True):
            raise UpstreamServiceError(
                str(result.get("error") or "Gmail rejected the message"),
                service="gmail",
            )
        return result


async def send_mail(
    sender: GmailSender, recipient: str, subject: str, body: str
) -> Dict[str, Any]:
    """Core logic for the email tool; failures come back as a status."""
    try:
        await asyncio.to_thread(sender.send, recipient, subject, body)
    except UpstreamServiceError as e:
        logger.error(f"Email sending failed: {e}")
        return {"status": "Failed to send email", "details": str(e)}
    logger.info(f"Email sent to {recipient}")
    return {"status": "Email sent successfully"}


def get_email_tools(
    api_key: Optional[str] = None,
    user_id: str = "default",
    client: Optional[Composio] = None,
    sender: Optional[GmailSender] = None,
) -> list:
    """Generate email tools bound to a Composio user, or to an existing sender."""
    sender = sender or GmailSender(client=client, api_key=api_key, user_id=user_id)

    @tool("send_mail")
    async def send_mail_tool(recipient: str, subject: str, body: str) -> dict:
        """
        Send an email through Gmail.

        Args:
            recipient: Recipient email address.
            subject: Email subject.
            body: Email body.
        """
        return await send_mail(sender, recipient, subject, body)

    return [send_mail_tool]
