"""Tests for platform dispatch and the single-call acquisition strategies."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.transcripts.models import (
    FailureKind,
    FetchAttempt,
    Platform,
    Transcript,
    TranscriptResult,
)
from src.transcripts.service import TranscriptService, extract_youtube_video_id
from src.transcripts.strategies import NativeYouTubeStrategy, SpeechToTextStrategy

VIDEO_ID = "dQw4w9WgXcQ"


class FakeStrategy:
    def __init__(self, strategy_id: str, result: TranscriptResult) -> None:
        self.strategy_id = strategy_id
        self.result = result
        self.calls: list[str] = []

    async def acquire(self, reference: str) -> TranscriptResult:
        self.calls.append(reference)
        return self.result


class FakeSpeech:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Platform]] = []

    async def acquire(self, reference: str, platform: Platform = Platform.X) -> TranscriptResult:
        self.calls.append((reference, platform))
        transcript = Transcript(full_text="spoken words", platform=platform)
        return TranscriptResult.success(transcript, [FetchAttempt("assemblyai", True)])


def _ok(text: str, strategy_id: str) -> TranscriptResult:
    return TranscriptResult.success(
        Transcript(full_text=text, platform=Platform.YOUTUBE),
        [FetchAttempt(strategy_id, True)],
    )


def _failed(kind: FailureKind, strategy_id: str) -> TranscriptResult:
    return TranscriptResult.failed(kind, f"{strategy_id} failed", [FetchAttempt(strategy_id, False, "x")])


# ---------------------------------------------------------------------------
# Video id extraction
# ---------------------------------------------------------------------------


class TestExtractYouTubeVideoId:
    @pytest.mark.parametrize(
        "url",
        [
            VIDEO_ID,
            f"https://www.youtube.com/watch?v={VIDEO_ID}",
            f"https://www.youtube.com/watch?feature=share&v={VIDEO_ID}&t=42",
            f"https://youtu.be/{VIDEO_ID}?si=abc",
            f"https://www.youtube.com/embed/{VIDEO_ID}",
            f"https://www.youtube.com/v/{VIDEO_ID}",
            f"https://www.youtube.com/shorts/{VIDEO_ID}",
            f"https://m.youtube.com/watch?v={VIDEO_ID}#comments",
        ],
    )
    def test_recognised_forms(self, url: str) -> None:
        assert extract_youtube_video_id(url) == VIDEO_ID

    @pytest.mark.parametrize("url", ["", "not a video", "https://vimeo.com/123456", "https://youtu.be/short"])
    def test_unrecognised(self, url: str) -> None:
        assert extract_youtube_video_id(url) is None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestTranscriptService:
    def _service(self, serpapi: FakeStrategy, native: FakeStrategy, sources: list[str] | None = None) -> TranscriptService:
        return TranscriptService(
            youtube_strategies={"serpapi": serpapi, "native": native},
            speech=FakeSpeech(),  # type: ignore[arg-type]
            youtube_sources=sources or ["serpapi", "native"],
        )

    def test_first_source_success_skips_the_rest(self) -> None:
        serpapi = FakeStrategy("serpapi", _ok("from serpapi", "unconstrained"))
        native = FakeStrategy("native", _ok("from native", "native"))
        result = asyncio.run(self._service(serpapi, native).acquire(Platform.YOUTUBE, f"https://youtu.be/{VIDEO_ID}"))

        assert result.transcript is not None
        assert result.transcript.full_text == "from serpapi"
        assert serpapi.calls == [VIDEO_ID]
        assert native.calls == []

    def test_falls_through_to_native_and_merges_attempts(self) -> None:
        serpapi = FakeStrategy("serpapi", _failed(FailureKind.EXHAUSTED, "unconstrained"))
        native = FakeStrategy("native", _ok("from native", "native"))
        result = asyncio.run(self._service(serpapi, native).acquire(Platform.YOUTUBE, VIDEO_ID))

        assert result.transcript is not None
        assert result.transcript.full_text == "from native"
        assert [a.strategy_id for a in result.attempts] == ["unconstrained", "native"]

    def test_source_order_is_configurable(self) -> None:
        serpapi = FakeStrategy("serpapi", _ok("from serpapi", "unconstrained"))
        native = FakeStrategy("native", _ok("from native", "native"))
        service = self._service(serpapi, native, sources=["native", "serpapi"])
        result = asyncio.run(service.acquire(Platform.YOUTUBE, VIDEO_ID))

        assert result.transcript is not None
        assert result.transcript.full_text == "from native"
        assert serpapi.calls == []

    def test_all_sources_unconfigured(self) -> None:
        serpapi = FakeStrategy("serpapi", TranscriptResult.failed(FailureKind.NOT_CONFIGURED, "no key"))
        native = FakeStrategy("native", TranscriptResult.failed(FailureKind.NOT_CONFIGURED, "no key"))
        result = asyncio.run(self._service(serpapi, native).acquire(Platform.YOUTUBE, VIDEO_ID))

        assert result.failure is FailureKind.NOT_CONFIGURED

    def test_unconfigured_source_does_not_mask_exhaustion(self) -> None:
        serpapi = FakeStrategy("serpapi", TranscriptResult.failed(FailureKind.NOT_CONFIGURED, "no key"))
        native = FakeStrategy("native", _failed(FailureKind.EXHAUSTED, "native"))
        result = asyncio.run(self._service(serpapi, native).acquire(Platform.YOUTUBE, VIDEO_ID))

        assert result.failure is FailureKind.EXHAUSTED
        assert result.reason == "native failed"

    def test_unknown_source_is_skipped(self) -> None:
        serpapi = FakeStrategy("serpapi", _ok("from serpapi", "unconstrained"))
        native = FakeStrategy("native", _ok("from native", "native"))
        service = self._service(serpapi, native, sources=["bogus", "serpapi"])
        result = asyncio.run(service.acquire(Platform.YOUTUBE, VIDEO_ID))

        assert result.ok

    def test_invalid_youtube_reference(self) -> None:
        serpapi = FakeStrategy("serpapi", _ok("unused", "unconstrained"))
        native = FakeStrategy("native", _ok("unused", "native"))
        result = asyncio.run(self._service(serpapi, native).acquire(Platform.YOUTUBE, "not a video"))

        assert result.failure is FailureKind.INVALID_REFERENCE
        assert serpapi.calls == []
        assert native.calls == []

    @pytest.mark.parametrize(
        "platform", [Platform.X, Platform.TIKTOK, Platform.INSTAGRAM, Platform.REDDIT, Platform.PODCAST]
    )
    def test_speech_platforms(self, platform: Platform) -> None:
        speech = FakeSpeech()
        service = TranscriptService(
            youtube_strategies={},
            speech=speech,  # type: ignore[arg-type]
        )
        result = asyncio.run(service.acquire(platform, "https://cdn.example.com/video.mp4"))

        assert result.transcript is not None
        assert result.transcript.platform is platform
        assert speech.calls == [("https://cdn.example.com/video.mp4", platform)]

    def test_unsupported_platform(self) -> None:
        service = TranscriptService(youtube_strategies={}, speech=FakeSpeech())  # type: ignore[arg-type]
        result = asyncio.run(service.acquire("vimeo", "https://vimeo.com/1"))  # type: ignore[arg-type]

        assert result.failure is FailureKind.UNSUPPORTED_PLATFORM


# ---------------------------------------------------------------------------
# Native captions and speech-to-text
# ---------------------------------------------------------------------------


class _FetchedTranscript(list):
    language_code = "en"


class TestNativeYouTubeStrategy:
    def test_converts_seconds_to_milliseconds(self) -> None:
        api = MagicMock()
        api.fetch.return_value = _FetchedTranscript(
            [
                SimpleNamespace(start=0.0, duration=1.5, text="hello"),
                SimpleNamespace(start=1.5, duration=2.25, text="there"),
            ]
        )
        result = asyncio.run(NativeYouTubeStrategy(language="en", api=api).acquire(VIDEO_ID))

        assert result.transcript is not None
        assert result.transcript.full_text == "hello there"
        assert result.transcript.language == "en"
        segments = result.transcript.segments
        assert segments is not None
        assert (segments[1].start_ms, segments[1].end_ms) == (1500, 3750)
        api.fetch.assert_called_once_with(VIDEO_ID, languages=["en"])

    def test_preferred_language_then_english(self) -> None:
        strategy = NativeYouTubeStrategy(language="de", api=MagicMock())
        assert strategy.languages == ["de", "en"]

    def test_fetch_failure_is_recorded(self) -> None:
        api = MagicMock()
        api.fetch.side_effect = OSError("network unreachable")
        result = asyncio.run(NativeYouTubeStrategy(language="en", api=api).acquire(VIDEO_ID))

        assert result.failure is FailureKind.EXHAUSTED
        assert result.attempts == [FetchAttempt("native", False, "network unreachable")]

    def test_failure_without_message_is_recorded(self) -> None:
        api = MagicMock()
        api.fetch.side_effect = OSError()
        result = asyncio.run(NativeYouTubeStrategy(language="en", api=api).acquire(VIDEO_ID))

        assert result.failure is FailureKind.EXHAUSTED
        assert result.attempts == [FetchAttempt("native", False, "OSError")]

    def test_failure_without_message_through_service(self) -> None:
        api = MagicMock()
        api.fetch.side_effect = ConnectionError()
        service = TranscriptService(
            youtube_strategies={"native": NativeYouTubeStrategy(language="en", api=api)},
            speech=FakeSpeech(),  # type: ignore[arg-type]
            youtube_sources=["native"],
        )
        result = asyncio.run(service.acquire(Platform.YOUTUBE, VIDEO_ID))

        assert result.failure is FailureKind.EXHAUSTED
        assert result.attempts[0].error_reason == "ConnectionError"

    def test_empty_captions(self) -> None:
        api = MagicMock()
        api.fetch.return_value = _FetchedTranscript()
        result = asyncio.run(NativeYouTubeStrategy(language="en", api=api).acquire(VIDEO_ID))

        assert result.failure is FailureKind.EXHAUSTED


class TestSpeechToTextStrategy:
    def test_no_key_is_not_configured(self) -> None:
        result = asyncio.run(SpeechToTextStrategy(api_key="").acquire("https://x.com/v.mp4"))
        assert result.failure is FailureKind.NOT_CONFIGURED
        assert result.attempts == []

    def test_success(self) -> None:
        strategy = SpeechToTextStrategy(api_key="test-key")
        with patch.object(
            SpeechToTextStrategy,
            "_transcribe",
            return_value={"text": "spoken words", "language_code": "en"},
        ):
            result = asyncio.run(strategy.acquire("https://tiktok.example/v.mp4", Platform.TIKTOK))

        assert result.transcript is not None
        assert result.transcript.full_text == "spoken words"
        assert result.transcript.platform is Platform.TIKTOK
        assert result.transcript.language == "en"

    def test_sdk_failure_is_recorded_not_raised(self) -> None:
        strategy = SpeechToTextStrategy(api_key="test-key")
        with patch.object(SpeechToTextStrategy, "_transcribe", side_effect=RuntimeError("bad key")):
            result = asyncio.run(strategy.acquire("https://x.com/v.mp4"))

        assert result.failure is FailureKind.EXHAUSTED
        assert result.reason == "transcription service unavailable"
        assert result.attempts[0].error_reason == "bad key"

    def test_empty_transcription(self) -> None:
        strategy = SpeechToTextStrategy(api_key="test-key")
        with patch.object(SpeechToTextStrategy, "_transcribe", return_value={"text": "  "}):
            result = asyncio.run(strategy.acquire("https://x.com/v.mp4"))

        assert result.failure is FailureKind.EXHAUSTED
