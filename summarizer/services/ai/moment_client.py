"""
Chat-completions client used for moment detection.
"""
import base64
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ParseError
from summarizer.services.ai.base_client import BaseAIClient
from summarizer.services.ai.prompt_builder import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class MomentDetectionClient(BaseAIClient):
    """Client for the moment detection model."""

    def __init__(self):
        settings = get_settings()
        super().__init__(
            service_name="moment_detection",
            url=settings.get_detection_url(),
            api_key=settings.detection_api_key,
            timeout=settings.detection_timeout,
            max_retries=settings.detection_max_retries,
        )
        self.model = settings.detection_model
        self.temperature = settings.detection_temperature
        self.max_tokens = settings.detection_max_tokens
        self.include_video = settings.detection_include_video

    def build_messages(self, prompt: str, video_path: Optional[Path] = None) -> List[Dict[str, Any]]:
        if video_path is None:
            user_content: Any = prompt
        else:
            encoded = base64.b64encode(video_path.read_bytes()).decode("ascii")
            user_content = [
                {"type": "text", "text": prompt},
                {"type": "video_url", "video_url": {"url": f"data:video/mp4;base64,{encoded}"}},
            ]
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    def complete(self, prompt: str, video_path: Optional[Path] = None) -> str:
        """
        Send a prompt and return the raw text of the first choice.

        The video is attached only when detection_include_video is enabled.

        Raises:
            CollaboratorError: If the request fails
            ParseError: If the reply is not JSON or has no content
        """
        attach = video_path if (self.include_video and video_path is not None and video_path.exists()) else None
        payload = {
            "model": self.model,
            "messages": self.build_messages(prompt, attach),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        logger.info(
            f"Requesting moment detection from {self.model} "
            f"(prompt={len(prompt)} chars, video={'yes' if attach else 'no'})"
        )
        data = self._post_json(payload)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ParseError(self.service_name, "Response has no message content")
        if not content:
            raise ParseError(self.service_name, "Empty message content")

        logger.debug(f"Moment detection reply: {len(content)} chars")
        return content


_client: Optional[MomentDetectionClient] = None


def get_moment_client() -> MomentDetectionClient:
    global _client
    if _client is None:
        _client = MomentDetectionClient()
    return _client
