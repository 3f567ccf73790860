from __future__ import annotations

import logging
import time
from uuid import uuid4

import httpx

MAGIC_STUDIO_URL = "https://ai-api.magicstudio.com/api/ai-art-generator"
IMAGE_TIMEOUT_SECONDS = 60.0
MAGIC_STUDIO_CLIENT_ID = "pSgX7WgjukXCBoYwDM8G8GLnRRkvAoJlqa5eAVvj95o"
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Origin": "https://magicstudio.com",
    "Referer": "https://magicstudio.com/ai-art-generator/",
}
logger = logging.getLogger(__name__)


class ImageGenerationError(RuntimeError):
    """Raised when the image service answers with a non-200 status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"image service returned status {status_code}")
        self.status_code = status_code


class MagicStudioClient:
    """Text-to-image client for the MagicStudio art generator."""

    def __init__(
        self,
        *,
        url: str = MAGIC_STUDIO_URL,
        anonymous_user_id: str | None = None,
        timeout: float = IMAGE_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._anonymous_user_id = anonymous_user_id or str(uuid4())
        self._transport = transport

    async def generate(self, prompt: str) -> bytes:
        payload = {
            "prompt": prompt,
            "output_format": "bytes",
            "user_profile_id": "null",
            "anonymous_user_id": self._anonymous_user_id,
            "request_timestamp": f"{time.time():.3f}",
            "user_is_subscribed": "false",
            "client_id": MAGIC_STUDIO_CLIENT_ID,
        }
        async with httpx.AsyncClient(
            transport=self._transport, headers=BROWSER_HEADERS, timeout=self._timeout
        ) as client:
            response = await client.post(self._url, json=payload)
        if response.status_code != httpx.codes.OK:
            logger.warning("Image generation failed: status=%s", response.status_code)
            raise ImageGenerationError(response.status_code)
        return response.content
