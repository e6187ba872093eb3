from __future__ import annotations

from typing import Any

import requests

from ..config import settings
from ..errors import RemoteServiceError
from .cinematography_guide import ANALYSIS_PROMPT, CLEAN_PROMPT


class GeminiService:
    """Wrapper around Google Gemini API (AI Studio key auth) for frame enrichment."""

    _BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    @classmethod
    def is_configured(cls) -> bool:
        return bool((settings.gemini_api_key or "").strip())

    @staticmethod
    def _split_data_url(data_url: str) -> tuple[str, str]:
        """Return (mime_type, base64 payload) of a ``data:`` URL."""
        header, sep, payload = data_url.partition(",")
        if not sep or not header.startswith("data:") or ";base64" not in header:
            raise RemoteServiceError("Frame must be a base64 data URL")
        mime_type = header[len("data:"):].split(";", 1)[0] or "image/jpeg"
        return mime_type, payload

    @classmethod
    def _generate_content(
        cls,
        *,
        parts: list[dict[str, Any]],
        model: str,
        response_modalities: list[str] | None = None,
        temperature: float = 0.35,
    ) -> dict[str, Any]:
        api_key = (settings.gemini_api_key or "").strip()
        if not api_key:
            raise RemoteServiceError("Gemini API key is missing (SSS_GEMINI_API_KEY)")

        chosen_model = model.strip()
        if not chosen_model:
            raise RemoteServiceError("Gemini model is not configured")

        generation_config: dict[str, Any] = {"temperature": temperature}
        if response_modalities is not None:
            generation_config["responseModalities"] = response_modalities

        payload: dict[str, Any] = {
            "contents": [{"parts": parts}],
            "generationConfig": generation_config,
        }

        try:
            response = requests.post(
                f"{cls._BASE_URL}/models/{chosen_model}:generateContent",
                params={"key": api_key},
                json=payload,
                timeout=(10, settings.gemini_timeout),
            )
        except requests.exceptions.Timeout as exc:
            raise RemoteServiceError(
                f"Gemini API timeout after {settings.gemini_timeout}s"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise RemoteServiceError(f"Gemini API request failed: {exc}") from exc

        if response.status_code >= 400:
            detail = response.text
            try:
                data = response.json()
                detail = data.get("error", {}).get("message", detail)
            except ValueError:
                pass
            raise RemoteServiceError(f"Gemini API error: {detail}")

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError("Gemini API returned a non-JSON response") from exc

    @staticmethod
    def _iter_parts(response_payload: dict[str, Any]):
        candidates = response_payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise RemoteServiceError("Gemini response did not contain candidates")

        for candidate in candidates:
            if not isinstance(candidate, dict):
                continue
            content = candidate.get("content")
            if not isinstance(content, dict):
                continue
            parts = content.get("parts")
            if not isinstance(parts, list):
                continue
            for part in parts:
                if isinstance(part, dict):
                    yield part

    @classmethod
    def _extract_text(cls, response_payload: dict[str, Any]) -> str:
        chunks: list[str] = []
        for part in cls._iter_parts(response_payload):
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                chunks.append(text)

        text_output = "\n".join(chunks).strip()
        if not text_output:
            raise RemoteServiceError("Gemini response did not contain textual output")
        return text_output

    @classmethod
    def _extract_image(cls, response_payload: dict[str, Any]) -> str:
        for part in cls._iter_parts(response_payload):
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return f"data:{mime_type};base64,{inline['data']}"
        raise RemoteServiceError("Gemini response did not contain an image")

    @classmethod
    def _image_part(cls, data_url: str) -> dict[str, Any]:
        mime_type, data = cls._split_data_url(data_url)
        return {"inlineData": {"mimeType": mime_type, "data": data}}

    @classmethod
    def analyze_frame(cls, frame_data_url: str, *, model: str | None = None) -> str:
        """Describe shot scale, angle, composition and lighting of a frame."""
        payload = cls._generate_content(
            parts=[cls._image_part(frame_data_url), {"text": ANALYSIS_PROMPT}],
            model=model or settings.gemini_model,
        )
        return cls._extract_text(payload)

    @classmethod
    def clean_frame(cls, frame_data_url: str, *, model: str | None = None) -> str:
        """Return a copy of the frame with its main subjects removed, as a data URL."""
        payload = cls._generate_content(
            parts=[cls._image_part(frame_data_url), {"text": CLEAN_PROMPT}],
            model=model or settings.gemini_image_model,
            response_modalities=["IMAGE"],
        )
        return cls._extract_image(payload)
