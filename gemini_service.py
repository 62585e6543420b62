import base64
import functools
import logging
import threading
import time
from dataclasses import dataclass, field

from google import genai
from google.genai import types
from google.genai.types import Modality

from config import Settings
from errors import RemoteCallFailure, ValidationError
from image_utils import ImageRef
from system_prompt import ENHANCE_PROMPT, SEARCH_PROMPT

logger = logging.getLogger(__name__)

ASPECT_RATIOS = ["1:1", "16:9", "9:16", "4:3", "3:4"]

GENERATED_MIME = "image/jpeg"


@dataclass(frozen=True)
class GroundingSource:
    uri: str
    title: str


@dataclass(frozen=True)
class SearchResult:
    text: str
    sources: list[GroundingSource] = field(default_factory=list)


def remote_call(name):
    """Log the duration of a remote call and wrap any failure in RemoteCallFailure."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except (RemoteCallFailure, ValidationError):
                raise
            except Exception as e:
                raise RemoteCallFailure(f"{name} failed: {e}") from e
            logger.info("%s finished in %.1fs", name, time.time() - start)
            return result
        return wrapper
    return decorator


class GeminiService:
    """The five remote operations the studio needs from Gemini and Imagen."""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def client(self):
        with self._client_lock:
            if self._client is None:
                if not self.settings.api_key:
                    raise RemoteCallFailure("GEMINI_API_KEY is not set. Add it to .env or the environment.")
                self._client = genai.Client(
                    api_key=self.settings.api_key,
                    http_options=types.HttpOptions(timeout=self.settings.timeout_ms),
                )
            return self._client

    @remote_call("generate_image")
    def generate_image(self, prompt, aspect_ratio="1:1") -> ImageRef:
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValidationError(f"Unsupported aspect ratio: {aspect_ratio}")

        response = self.client.models.generate_images(
            model=self.settings.image_model,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type=GENERATED_MIME,
                aspect_ratio=aspect_ratio,
            ),
        )
        if not response.generated_images:
            raise RemoteCallFailure("Model did not return an image")
        image = response.generated_images[0].image
        if image is None or not image.image_bytes:
            raise RemoteCallFailure("Model did not return an image")
        return ImageRef(image.image_bytes, image.mime_type or GENERATED_MIME)

    @remote_call("edit_image")
    def edit_image(self, prompt, image_base64, mime_type) -> ImageRef:
        config = types.GenerateContentConfig(
            response_modalities=[Modality.IMAGE, Modality.TEXT],
        )
        contents = [
            types.Part.from_bytes(data=base64.b64decode(image_base64), mime_type=mime_type),
            types.Part(text=prompt),
        ]
        response = self.client.models.generate_content(
            model=self.settings.edit_model, contents=contents, config=config,
        )

        model_text = None
        for candidate in response.candidates or []:
            parts = candidate.content.parts if candidate.content else None
            for part in parts or []:
                if part.inline_data and part.inline_data.data:
                    mime = part.inline_data.mime_type or "image/png"
                    return ImageRef(part.inline_data.data, mime)
                if part.text:
                    model_text = part.text
            break

        if model_text:
            logger.warning("Edit model answered with text instead of an image: %.200s", model_text)
        raise RemoteCallFailure("Model did not return an image")

    @remote_call("enhance_prompt")
    def enhance_prompt(self, prompt) -> str:
        config = types.GenerateContentConfig(system_instruction=ENHANCE_PROMPT)
        response = self.client.models.generate_content(
            model=self.settings.text_model, contents=prompt, config=config,
        )
        text = (response.text or "").strip()
        if not text:
            raise RemoteCallFailure("Model returned an empty prompt")
        return text

    @remote_call("pro_task")
    def pro_task(self, prompt) -> str:
        config = types.GenerateContentConfig(
            thinking_config=types.ThinkingConfig(thinking_budget=self.settings.thinking_budget),
        )
        response = self.client.models.generate_content(
            model=self.settings.pro_model, contents=prompt, config=config,
        )
        return response.text or ""

    @remote_call("grounded_search")
    def grounded_search(self, prompt) -> SearchResult:
        config = types.GenerateContentConfig(
            system_instruction=SEARCH_PROMPT,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        response = self.client.models.generate_content(
            model=self.settings.text_model, contents=prompt, config=config,
        )
        return SearchResult(text=response.text or "", sources=grounding_sources(response))


def grounding_sources(response):
    """Citation sources from the first candidate's grounding metadata."""
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        sources.append(GroundingSource(
            uri=getattr(web, "uri", None) or "#",
            title=getattr(web, "title", None) or "Unknown Source",
        ))
    return sources
