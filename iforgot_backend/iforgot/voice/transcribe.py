"""
Speech-to-text for voice notes.

Two providers are supported. Deepgram is used whenever its key is configured;
OpenAI Whisper is the fallback.
"""

import logging
from typing import Optional

import httpx

from iforgot.errors import TranscriptionError

logger = logging.getLogger(__name__)

DEEPGRAM_URL = "https://api.deepgram.com/v1/listen"
OPENAI_TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"
WHISPER_MODEL = "whisper-1"


# PUBLIC_INTERFACE
class Transcriber:
    """Transcribes audio with whichever provider has a credential."""

    def __init__(
        self,
        deepgram_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.deepgram_api_key = deepgram_api_key
        self.openai_api_key = openai_api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def provider(self) -> Optional[str]:
        if self.deepgram_api_key:
            return "deepgram"
        if self.openai_api_key:
            return "openai"
        return None

    def transcribe(self, audio: bytes, mime_type: str, filename: str = "audio.webm") -> str:
        """
        Turn audio bytes into text.

        Raises:
            TranscriptionError: If no provider is configured or the provider call fails.
        """
        provider = self.provider
        if provider is None:
            raise TranscriptionError("No transcription API key configured")

        logger.info("Transcribing %d bytes of %s with %s", len(audio), mime_type, provider)
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            try:
                if provider == "deepgram":
                    return self._transcribe_with_deepgram(client, audio, mime_type)
                return self._transcribe_with_whisper(client, audio, mime_type, filename)
            except httpx.HTTPStatusError as exc:
                name = "Deepgram" if provider == "deepgram" else "OpenAI Whisper"
                raise TranscriptionError(
                    f"{name} API error: {exc.response.status_code} {exc.response.reason_phrase}"
                ) from exc
            except httpx.HTTPError as exc:
                raise TranscriptionError(f"Transcription request failed: {exc}") from exc

    def _transcribe_with_deepgram(self, client: httpx.Client, audio: bytes, mime_type: str) -> str:
        response = client.post(
            DEEPGRAM_URL,
            headers={
                "Authorization": f"Token {self.deepgram_api_key}",
                "Content-Type": mime_type,
            },
            content=audio,
        )
        response.raise_for_status()
        data = response.json()
        try:
            return data["results"]["channels"][0]["alternatives"][0]["transcript"] or ""
        except (KeyError, IndexError, TypeError):
            return ""

    def _transcribe_with_whisper(
        self, client: httpx.Client, audio: bytes, mime_type: str, filename: str
    ) -> str:
        response = client.post(
            OPENAI_TRANSCRIPTIONS_URL,
            headers={"Authorization": f"Bearer {self.openai_api_key}"},
            files={"file": (filename, audio, mime_type)},
            data={"model": WHISPER_MODEL},
        )
        response.raise_for_status()
        return response.json().get("text") or ""
