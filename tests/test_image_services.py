from types import SimpleNamespace

import pytest

from services import gemini_generator, image_processor


def test_build_outfit_prompt_without_person():
    prompt = gemini_generator.build_outfit_prompt("베이지 트렌치코트", "female", height="165")

    assert "female clothing" in prompt
    assert "Outfit description: 베이지 트렌치코트" in prompt
    assert "height 165cm" in prompt
    assert "mannequin" in prompt
    assert "THIS SAME PERSON" not in prompt


def test_build_outfit_prompt_with_person():
    prompt = gemini_generator.build_outfit_prompt("니트", "", with_person=True)

    assert "unisex clothing" in prompt
    assert "THIS SAME PERSON" in prompt
    assert "Body reference" not in prompt


def test_image_url_for():
    assert gemini_generator.image_url_for("output/outfit_1.png") == "/output/outfit_1.png"


class FakeGenai:
    """Stands in for genai.Client; yields the given chunks from generate_content_stream"""

    def __init__(self, chunks):
        self.chunks = chunks
        self.requests = []

    def __call__(self, api_key):
        self.models = self
        return self

    def generate_content_stream(self, model, contents, config):
        self.requests.append({"model": model, "contents": contents})
        return iter(self.chunks)


def image_chunk(data=b"png-bytes", mime_type="image/png"):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def text_chunk(text):
    part = SimpleNamespace(inline_data=None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))], text=text)


def test_generate_outfit_image_saves_file(monkeypatch, tmp_path):
    fake = FakeGenai([SimpleNamespace(candidates=None), image_chunk()])
    monkeypatch.setattr(gemini_generator.genai, "Client", fake)

    path = gemini_generator.generate_outfit_image(
        "니트 코디", "male", output_dir=str(tmp_path), api_key="key", model="image-model",
    )

    assert path.startswith(str(tmp_path))
    assert path.endswith(".png")
    with open(path, "rb") as f:
        assert f.read() == b"png-bytes"
    assert fake.requests[0]["model"] == "image-model"


def test_generate_outfit_image_without_image(monkeypatch, tmp_path):
    monkeypatch.setattr(gemini_generator.genai, "Client", FakeGenai([text_chunk("I can't draw that")]))

    with pytest.raises(RuntimeError, match="I can't draw that"):
        gemini_generator.generate_outfit_image("니트 코디", "male", output_dir=str(tmp_path), api_key="key")


def test_generate_outfit_image_needs_suggestion(tmp_path):
    with pytest.raises(ValueError):
        gemini_generator.generate_outfit_image("", "male", output_dir=str(tmp_path), api_key="key")


def test_describe_liked_images_skips_failures(monkeypatch):
    described = []

    def describe(image_bytes, mime_type, api_key, model):
        described.append(image_bytes)
        if image_bytes == b"bad":
            raise RuntimeError("safety block")
        return f"desc:{image_bytes.decode()}"

    monkeypatch.setattr(image_processor, "describe_outfit_image", describe)
    monkeypatch.setattr(image_processor.time, "sleep", lambda seconds: None)

    refs = [
        "data:image/png;base64,b25l",  # "one"
        "data:image/png;base64,YmFk",  # "bad"
        "not-a-file.png",
    ]
    progress = []
    result = image_processor.describe_liked_images(refs, progress_callback=lambda *args: progress.append(args))

    assert result == ["desc:one"]
    assert described == [b"one", b"bad"]
    assert progress == [(1, 3, "desc:one")]


def test_describe_liked_images_retries_rate_limit(monkeypatch):
    attempts = []

    def describe(image_bytes, mime_type, api_key, model):
        attempts.append(image_bytes)
        if len(attempts) == 1:
            raise RuntimeError("429 RESOURCE_EXHAUSTED")
        return "retried"

    monkeypatch.setattr(image_processor, "describe_outfit_image", describe)
    monkeypatch.setattr(image_processor.time, "sleep", lambda seconds: None)

    assert image_processor.describe_liked_images(["data:image/png;base64,b25l"]) == ["retried"]
    assert len(attempts) == 2


def test_gemini_client_requires_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    with pytest.raises(ValueError):
        image_processor._gemini_client()
