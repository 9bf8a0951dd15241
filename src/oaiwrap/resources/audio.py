from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ._base import Resource, drop_none
from ..core.errors import ValidationFailed
from ..utils.logging import get_logger
from ..utils.media_utils import read_upload
from ..utils.pricing import lookup_speech_price, lookup_transcription_price
from ..utils.validation import PathLike, check_audio_path, check_choice, check_range

logger = get_logger(__name__)

VOICES = [
    "alloy",
    "ash",
    "ballad",
    "coral",
    "echo",
    "fable",
    "nova",
    "onyx",
    "sage",
    "shimmer",
    "verse",
]
SPEECH_FORMATS = ["mp3", "opus", "aac", "flac", "wav", "pcm"]
TRANSCRIPTION_FORMATS = ["json", "text", "srt", "verbose_json", "vtt"]
MAX_SPEECH_CHARS = 4096


@dataclass
class SpeechResult:
    text: str
    voice: str
    model: str
    response_format: str
    output_path: Optional[str] = None
    bytes_written: int = 0
    estimated_cost: Optional[float] = None
    audio: Optional[bytes] = field(default=None, repr=False)


@dataclass
class TranscriptionResult:
    path: str
    text: str
    model: str
    language: Optional[str] = None
    duration: Optional[float] = None
    estimated_cost: Optional[float] = None
    raw: Any = field(default=None, repr=False)


class AudioResource(Resource):
    """``audio/speech`` and ``audio/transcriptions``."""

    async def speech(
        self,
        text: str,
        *,
        voice: str = "alloy",
        model: str = "tts-1",
        response_format: str = "mp3",
        speed: float = 1.0,
        output_path: Optional[Union[str, Path]] = None,
    ) -> SpeechResult:
        if not text or not text.strip():
            raise ValidationFailed("Text to speak is required.")
        if len(text) > MAX_SPEECH_CHARS:
            raise ValidationFailed(f"Speech input is limited to {MAX_SPEECH_CHARS} characters.")
        check_choice("voice", voice, VOICES)
        check_choice("response_format", response_format, SPEECH_FORMATS)
        check_range("speed", speed, 0.25, 4.0)

        payload = {
            "model": model,
            "input": text,
            "voice": voice,
            "response_format": response_format,
            "speed": speed,
        }
        audio = await self._post("audio/speech", payload, expect="bytes")
        price = lookup_speech_price(model)
        result = SpeechResult(
            text=text,
            voice=voice,
            model=model,
            response_format=response_format,
            estimated_cost=None if price is None else round(len(text) / 1_000_000 * price, 8),
            audio=audio,
        )
        if output_path is not None:
            target = Path(output_path).expanduser()
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(audio)
            result.output_path = str(target)
            result.bytes_written = len(audio)
            logger.info("[speech] Wrote %d bytes to %s", len(audio), target)
        return result

    async def transcribe(
        self,
        path: PathLike,
        *,
        model: str = "whisper-1",
        language: Optional[str] = None,
        prompt: Optional[str] = None,
        response_format: str = "json",
        temperature: Optional[float] = None,
    ) -> TranscriptionResult:
        resolved = check_audio_path(path)
        check_choice("response_format", response_format, TRANSCRIPTION_FORMATS)
        check_range("temperature", temperature, 0.0, 1.0)

        fields: Dict[str, Any] = {"model": model, "response_format": response_format}
        fields.update(
            drop_none(
                {
                    "language": language,
                    "prompt": prompt,
                    "temperature": None if temperature is None else str(temperature),
                }
            )
        )
        raw = await self._executor.request(
            "POST",
            "audio/transcriptions",
            form_fields=fields,
            files=[("file", read_upload(resolved))],
        )
        if isinstance(raw, dict):
            text = raw.get("text", "")
            detected = raw.get("language")
            duration = raw.get("duration")
        else:
            text, detected, duration = str(raw), None, None
        price = lookup_transcription_price(model)
        cost = None
        if price is not None and duration is not None:
            cost = round(float(duration) / 60.0 * price, 8)
        return TranscriptionResult(
            path=str(resolved),
            text=text.strip(),
            model=model,
            language=detected or language,
            duration=duration,
            estimated_cost=cost,
            raw=raw,
        )
