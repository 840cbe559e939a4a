# app/services/hardware_service.py
"""
Light hardware bridge — forwards light on/off to the NodeMCU (ESP8266) controller.

Endpoint: GET http://{esp}/led?state=on|off
Best effort: failures are logged and swallowed, the dashboard state stays authoritative.
"""

from typing import Optional
import httpx
from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

LED_PATH = "/led"


class LightController:
    def __init__(self, base_url: Optional[str], timeout: float = 2.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "LightController":
        return cls(settings.ESP_URL, settings.ESP_TIMEOUT_SECONDS)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def set_light(self, on: bool) -> bool:
        """Send the LED command. Returns True if the controller acknowledged with 2xx."""
        command = "on" if on else "off"
        if not self.enabled:
            logger.debug(f"[ESP] No controller configured — LED {command} not sent")
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}{LED_PATH}", params={"state": command})
        except httpx.HTTPError as e:
            logger.error(f"[ESP] Failed to reach light controller at {self.base_url}: {e}")
            return False

        if response.status_code // 100 != 2:
            logger.warning(f"[ESP] LED {command} returned HTTP {response.status_code}")
            return False
        logger.info(f"[ESP] LED {command}")
        return True
