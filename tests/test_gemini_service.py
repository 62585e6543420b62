import base64
from types import SimpleNamespace

import pytest
from google.genai import types

from config import Settings
from errors import RemoteCallFailure, ValidationError
from gemini_service import ASPECT_RATIOS, GeminiService, GroundingSource, grounding_sources


class StubModels:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _respond(self, method, kwargs):
        self.calls.append((method, kwargs))
        if self.error:
            raise self.error
        return self.response

    def generate_content(self, **kwargs):
        return self._respond("generate_content", kwargs)

    def generate_images(self, **kwargs):
        return self._respond("generate_images", kwargs)


def make_service(response=None, error=None, **settings):
    models = StubModels(response, error)
    settings.setdefault("api_key", "test-key")
    service = GeminiService(Settings(**settings), client=SimpleNamespace(models=models))
    return service, models


def content_response(*parts, grounding=None):
    return types.GenerateContentResponse(candidates=[
        types.Candidate(
            content=types.Content(role="model", parts=list(parts)),
            grounding_metadata=grounding,
        )
    ])


def test_generate_image():
    response = types.GenerateImagesResponse(generated_images=[
        types.GeneratedImage(image=types.Image(image_bytes=b"jpeg-bytes", mime_type="image/jpeg")),
    ])
    service, models = make_service(response)

    image = service.generate_image("a raccoon detective", "16:9")

    assert image.data == b"jpeg-bytes"
    assert image.mime_type == "image/jpeg"
    method, kwargs = models.calls[0]
    assert method == "generate_images"
    assert kwargs["model"] == "imagen-4.0-generate-001"
    assert kwargs["prompt"] == "a raccoon detective"
    assert kwargs["config"].aspect_ratio == "16:9"
    assert kwargs["config"].number_of_images == 1


def test_generate_image_rejects_unknown_ratio_before_calling_out():
    service, models = make_service()
    with pytest.raises(ValidationError):
        service.generate_image("a raccoon", "21:9")
    assert models.calls == []
    assert "21:9" not in ASPECT_RATIOS


def test_generate_image_without_images_fails():
    service, _ = make_service(types.GenerateImagesResponse(generated_images=[]))
    with pytest.raises(RemoteCallFailure):
        service.generate_image("a raccoon")


def test_edit_image_returns_first_inline_image(png_bytes):
    response = content_response(
        types.Part(text="Here is your edit."),
        types.Part(inline_data=types.Blob(data=b"edited", mime_type="image/png")),
    )
    service, models = make_service(response)

    image = service.edit_image("add a hat", base64.b64encode(png_bytes).decode(), "image/png")

    assert image.data == b"edited"
    assert image.mime_type == "image/png"
    _, kwargs = models.calls[0]
    assert kwargs["model"] == "gemini-2.5-flash-image"
    image_part, text_part = kwargs["contents"]
    assert image_part.inline_data.data == png_bytes
    assert image_part.inline_data.mime_type == "image/png"
    assert text_part.text == "add a hat"
    assert types.Modality.IMAGE in kwargs["config"].response_modalities


def test_edit_image_with_text_only_answer_fails(png_bytes):
    response = content_response(types.Part(text="I cannot edit this image."))
    service, _ = make_service(response)
    with pytest.raises(RemoteCallFailure, match="did not return an image"):
        service.edit_image("add a hat", base64.b64encode(png_bytes).decode(), "image/png")


def test_enhance_prompt_uses_system_instruction():
    service, models = make_service(content_response(types.Part(text="  A vivid raccoon.\n")))

    assert service.enhance_prompt("raccoon") == "A vivid raccoon."
    _, kwargs = models.calls[0]
    assert kwargs["model"] == "gemini-2.5-flash"
    assert "prompt" in kwargs["config"].system_instruction.lower()


def test_enhance_prompt_empty_answer_fails():
    service, _ = make_service(content_response(types.Part(text="   ")))
    with pytest.raises(RemoteCallFailure):
        service.enhance_prompt("raccoon")


def test_pro_task_sets_thinking_budget():
    service, models = make_service(
        content_response(types.Part(text="Long answer")), thinking_budget=2048,
    )

    assert service.pro_task("explain") == "Long answer"
    _, kwargs = models.calls[0]
    assert kwargs["model"] == "gemini-2.5-pro"
    assert kwargs["config"].thinking_config.thinking_budget == 2048


def test_grounded_search_collects_sources():
    grounding = types.GroundingMetadata(grounding_chunks=[
        types.GroundingChunk(web=types.GroundingChunkWeb(uri="https://a.example", title="A")),
        types.GroundingChunk(web=types.GroundingChunkWeb(uri=None, title=None)),
        types.GroundingChunk(),
    ])
    service, models = make_service(content_response(types.Part(text="Answer."), grounding=grounding))

    result = service.grounded_search("who won?")

    assert result.text == "Answer."
    assert result.sources == [
        GroundingSource("https://a.example", "A"),
        GroundingSource("#", "Unknown Source"),
        GroundingSource("#", "Unknown Source"),
    ]
    _, kwargs = models.calls[0]
    assert kwargs["config"].tools[0].google_search is not None


def test_grounding_sources_without_candidates():
    assert grounding_sources(types.GenerateContentResponse(candidates=[])) == []
    assert grounding_sources(content_response(types.Part(text="no metadata"))) == []


def test_sdk_errors_become_remote_call_failures():
    error = RuntimeError("429 RESOURCE_EXHAUSTED")
    service, _ = make_service(error=error)

    with pytest.raises(RemoteCallFailure) as excinfo:
        service.pro_task("explain")
    assert excinfo.value.__cause__ is error


def test_missing_api_key_fails_on_first_call():
    service = GeminiService(Settings(api_key=None))
    with pytest.raises(RemoteCallFailure, match="GEMINI_API_KEY"):
        service.enhance_prompt("raccoon")
