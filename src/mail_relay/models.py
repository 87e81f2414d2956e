"""Request, response and message models."""

from email.utils import formataddr
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SendEmailRequest(BaseModel):
    """Body of POST /send-email.

    Every field is optional at parse time; ``subject`` and ``body`` are
    enforced when the request is resolved so that their absence yields a
    400 with a descriptive message.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    sender_name: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None


class ResolvedEmail(BaseModel):
    """A request with every default applied, ready for dispatch."""

    model_config = ConfigDict(frozen=True)

    from_addr: str
    to_addr: str
    sender_name: str
    subject: str
    body: str

    @property
    def from_header(self) -> str:
        """From header combining display name and address, e.g. ``Bot <a@x.com>``."""
        return formataddr((self.sender_name, self.from_addr))


class SendEmailResponse(BaseModel):
    """JSON result returned by POST /send-email."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
