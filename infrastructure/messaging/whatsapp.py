"""WhatsApp gateway implementation of MessageSender.

The gateway exposes a single GET endpoint:
    {base_url}/create-message?apikey=...&to=<digits>&message=<text>
and answers with JSON ``{"status": bool, "message": str, ...}``. A message
counts as delivered only when the HTTP call succeeds and ``status`` is truthy.

Message bodies are Jinja2 templates under templates/messages/, one file per
template id (lower-cased).
"""

import os
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from config import MessagingSettings
from infrastructure.http_client import HttpClient
from infrastructure.messaging.protocol import DeliveryResult, TemplateId
from shared.logging import get_logger

log = get_logger(__name__)

_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "messages",
)


class WhatsAppMessageSender:
    def __init__(
        self,
        settings: MessagingSettings,
        http_client: HttpClient,
        app_url: str = "https://dineezy.in",
        otp_ttl_minutes: int = 10,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._otp_ttl_minutes = otp_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape([]),
            keep_trailing_newline=False,
        )

    def render(self, template_id: TemplateId, variables: dict[str, Any]) -> str:
        template = self._jinja.get_template(f"{template_id.lower()}.txt")
        return template.render(
            brand_name=self._settings.brand_name,
            app_url=self._app_url,
            ttl_minutes=self._otp_ttl_minutes,
            **variables,
        )

    async def send(
        self, destination: str, template_id: TemplateId, variables: dict[str, Any]
    ) -> DeliveryResult:
        if not self._settings.whatsapp_api_key:
            log.error("whatsapp_send_failed", reason="api_key_not_configured")
            return DeliveryResult(delivered=False, detail="api_key_not_configured")

        try:
            message = self.render(template_id, variables)
        except TemplateNotFound:
            log.error("whatsapp_template_missing", template_id=template_id)
            return DeliveryResult(delivered=False, detail="template_missing")

        to = destination[1:] if destination.startswith("+") else destination
        url = f"{self._settings.whatsapp_api_base_url.rstrip('/')}/create-message"
        params = {"apikey": self._settings.whatsapp_api_key, "to": to, "message": message}

        try:
            response = await self._http.get(url, params=params)
        except Exception as e:
            log.error(
                "whatsapp_send_error",
                to_phone=to,
                template_id=template_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DeliveryResult(delivered=False, detail="network_error")

        if response.status_code >= 400:
            log.error(
                "whatsapp_send_failed",
                to_phone=to,
                template_id=template_id,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return DeliveryResult(delivered=False, detail=f"http_{response.status_code}")

        try:
            body = response.json()
        except ValueError:
            log.error("whatsapp_bad_response", to_phone=to, response=response.text[:200])
            return DeliveryResult(delivered=False, detail="invalid_response")

        if body.get("status") or body.get("success"):
            log.info("whatsapp_sent_success", to_phone=to, template_id=template_id)
            return DeliveryResult(delivered=True)

        log.warning(
            "whatsapp_not_delivered",
            to_phone=to,
            template_id=template_id,
            gateway_message=str(body.get("message", ""))[:200],
        )
        return DeliveryResult(delivered=False, detail=str(body.get("message", "")))
