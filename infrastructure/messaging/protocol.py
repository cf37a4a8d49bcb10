"""MessageSender protocol. The OTP services depend on this, not the concrete gateway."""

from dataclasses import dataclass
from typing import Any, Literal, Protocol

TemplateId = Literal["PHONE_VERIFICATION_OTP", "WELCOME_LOGIN"]


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    detail: str = ""


class MessageSender(Protocol):
    async def send(
        self, destination: str, template_id: TemplateId, variables: dict[str, Any]
    ) -> DeliveryResult: ...
