"""Tests for the transcription providers using httpx.MockTransport."""

import httpx
import pytest

from iforgot.errors import TranscriptionError
from iforgot.voice.transcribe import DEEPGRAM_URL, OPENAI_TRANSCRIPTIONS_URL, Transcriber

AUDIO = b"\x1aE\xdf\xa3fake-webm-bytes"


def _deepgram_payload(text: str) -> dict:
    return {"results": {"channels": [{"alternatives": [{"transcript": text}]}]}}


class TestProviderSelection:
    def test_deepgram_preferred_when_both_configured(self) -> None:
        assert Transcriber(deepgram_api_key="dg", openai_api_key="oa").provider == "deepgram"

    def test_openai_when_only_openai_configured(self) -> None:
        assert Transcriber(openai_api_key="oa").provider == "openai"

    def test_no_provider(self) -> None:
        transcriber = Transcriber()
        assert transcriber.provider is None
        with pytest.raises(TranscriptionError, match="No transcription API key configured"):
            transcriber.transcribe(AUDIO, "audio/webm")


class TestDeepgram:
    def test_sends_raw_audio_with_token(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            return httpx.Response(200, json=_deepgram_payload("buy more coffee"))

        transcriber = Transcriber(
            deepgram_api_key="dg-key", openai_api_key="oa-key", transport=httpx.MockTransport(handler)
        )
        assert transcriber.transcribe(AUDIO, "audio/webm") == "buy more coffee"
        assert seen["url"] == DEEPGRAM_URL
        assert seen["auth"] == "Token dg-key"
        assert seen["type"] == "audio/webm"
        assert seen["body"] == AUDIO

    def test_missing_transcript_is_empty(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"results": {"channels": []}}))
        transcriber = Transcriber(deepgram_api_key="dg-key", transport=transport)
        assert transcriber.transcribe(AUDIO, "audio/webm") == ""

    def test_http_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(401))
        transcriber = Transcriber(deepgram_api_key="bad", transport=transport)
        with pytest.raises(TranscriptionError, match="Deepgram API error: 401"):
            transcriber.transcribe(AUDIO, "audio/webm")


class TestWhisper:
    def test_sends_multipart_with_bearer(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            return httpx.Response(200, json={"text": "call the dentist"})

        transcriber = Transcriber(openai_api_key="oa-key", transport=httpx.MockTransport(handler))
        assert transcriber.transcribe(AUDIO, "audio/webm", filename="memo.webm") == "call the dentist"
        assert seen["url"] == OPENAI_TRANSCRIPTIONS_URL
        assert seen["auth"] == "Bearer oa-key"
        assert seen["type"].startswith("multipart/form-data")
        assert b"whisper-1" in seen["body"]
        assert b"memo.webm" in seen["body"]
        assert AUDIO in seen["body"]

    def test_http_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        transcriber = Transcriber(openai_api_key="oa-key", transport=transport)
        with pytest.raises(TranscriptionError, match="OpenAI Whisper API error: 500"):
            transcriber.transcribe(AUDIO, "audio/webm")

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        transcriber = Transcriber(openai_api_key="oa-key", transport=httpx.MockTransport(handler))
        with pytest.raises(TranscriptionError, match="Transcription request failed"):
            transcriber.transcribe(AUDIO, "audio/webm")
