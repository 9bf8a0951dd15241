import asyncio
import base64
import json
from typing import Any, Dict, List, Tuple

import pytest

from oaiwrap.core.errors import ErrorKind, RemoteRequestFailed, ValidationFailed
from oaiwrap.core.settings import Settings
from oaiwrap.resources import (
    AudioResource,
    BatchesResource,
    ChatResource,
    EmbeddingsResource,
    FilesResource,
    ImagesResource,
    ModelsResource,
    ModerationResource,
    build_batch_lines,
    cosine_similarity,
)
from oaiwrap.utils import analytics


class FakeExecutor:
    """Records calls and answers from a ``(method, path) -> response`` table."""

    def __init__(self, responses: Dict[Tuple[str, str], Any] = None, settings: Settings = None):
        self.settings = settings or Settings()
        self.responses = responses or {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    async def request(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs))
        answer = self.responses[(method, path)]
        if callable(answer):
            answer = answer(kwargs)
        if isinstance(answer, Exception):
            raise answer
        return answer


class _Encoder:
    def encode(self, text):
        return list(range(len(text.split())))


def _chat_response(content="Hello!", model="gpt-4o-mini-2024-07-18"):
    return {
        "id": "chatcmpl-1",
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 1000, "completion_tokens": 500, "total_tokens": 1500},
    }


def test_chat_complete_builds_payload_and_result():
    executor = FakeExecutor({("POST", "chat/completions"): _chat_response()})
    chat = ChatResource(executor)
    result = asyncio.run(chat.complete("Hi there", system_prompt="Be brief", top_p=0.5))

    method, path, kwargs = executor.calls[0]
    body = kwargs["json_body"]
    assert body["model"] == "gpt-4o-mini"
    assert body["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hi there"},
    ]
    assert body["max_completion_tokens"] == 1000
    assert body["temperature"] == 0.7
    assert body["top_p"] == 0.5
    assert result.response == "Hello!"
    assert result.finish_reason == "stop"
    assert result.total_tokens == 1500
    assert result.estimated_cost == pytest.approx(0.00045)
    assert result.success


def test_chat_reasoning_model_drops_sampling_parameters():
    executor = FakeExecutor({("POST", "chat/completions"): _chat_response(model="o3-mini")})
    asyncio.run(ChatResource(executor).complete("Solve", model="o3-mini", json_mode=True))
    body = executor.calls[0][2]["json_body"]
    assert "temperature" not in body
    assert body["response_format"] == {"type": "json_object"}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"temperature": 2.5},
        {"presence_penalty": -3},
        {"frequency_penalty": 2.1},
        {"top_p": 1.5},
        {"max_tokens": 0},
    ],
)
def test_chat_rejects_out_of_range_parameters_before_sending(kwargs):
    executor = FakeExecutor()
    with pytest.raises(ValidationFailed):
        asyncio.run(ChatResource(executor).complete("Hi", **kwargs))
    assert executor.calls == []


def test_chat_attaches_images_as_data_urls(tmp_path):
    image = tmp_path / "cat.png"
    image.write_bytes(b"\x89PNG fake")
    executor = FakeExecutor({("POST", "chat/completions"): _chat_response("A cat.")})
    result = asyncio.run(ChatResource(executor).complete("What is this?", images=[image]))
    content = executor.calls[0][2]["json_body"]["messages"][-1]["content"]
    assert content[0] == {"type": "text", "text": "What is this?"}
    url = content[1]["image_url"]["url"]
    assert url.startswith("data:image/png;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == b"\x89PNG fake"
    assert result.response == "A cat."


def test_chat_rejects_bad_image_extension(tmp_path):
    doc = tmp_path / "notes.txt"
    doc.write_text("hello")
    with pytest.raises(ValidationFailed):
        asyncio.run(ChatResource(FakeExecutor()).complete("Look", images=[doc]))
    with pytest.raises(ValidationFailed):
        asyncio.run(ChatResource(FakeExecutor()).complete("Look", images=[tmp_path / "missing.png"]))


def test_chat_complete_many_isolates_failures():
    def answer(kwargs):
        prompt = kwargs["json_body"]["messages"][-1]["content"]
        if prompt == "bad":
            return RemoteRequestFailed("Invalid request", status_code=400)
        return _chat_response(content=prompt.upper())

    executor = FakeExecutor({("POST", "chat/completions"): answer})
    results = asyncio.run(ChatResource(executor).complete_many(["one", "bad", "three"], throttle_limit=2))
    assert [r.prompt for r in results] == ["one", "bad", "three"]
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error == "Invalid request"
    assert results[1].error_kind == ErrorKind.REMOTE_REQUEST_FAILED.value
    assert results[2].response == "THREE"


def test_chat_complete_many_uses_settings_from_batch_start():
    executor = FakeExecutor()

    def answer(kwargs):
        executor.settings = Settings(model="gpt-4.1", max_tokens=50, temperature=0.1)
        return _chat_response()

    executor.responses[("POST", "chat/completions")] = answer
    asyncio.run(ChatResource(executor).complete_many(["a", "b", "c"], throttle_limit=1))
    bodies = [kwargs["json_body"] for _, _, kwargs in executor.calls]
    assert [b["model"] for b in bodies] == ["gpt-4o-mini"] * 3
    assert [b["max_completion_tokens"] for b in bodies] == [1000] * 3
    assert [b["temperature"] for b in bodies] == [0.7] * 3


def test_embeddings_create_chunks_and_records(monkeypatch):
    monkeypatch.setattr(analytics, "_get_tokenizer", lambda model: _Encoder())

    def answer(kwargs):
        chunk = kwargs["json_body"]["input"]
        if "fail me" in chunk:
            return RemoteRequestFailed("quota exceeded", status_code=429)
        return {
            "model": "text-embedding-3-small",
            "data": [{"index": i, "embedding": [float(i), 1.0, 0.0]} for i in range(len(chunk))],
        }

    executor = FakeExecutor({("POST", "embeddings"): answer})
    texts = ["alpha beta", "gamma", "fail me", "delta"]
    results = asyncio.run(
        EmbeddingsResource(executor).create(texts, chunk_size=2, pause=0)
    )
    assert len(executor.calls) == 2
    assert len(results) == 4
    assert [r.success for r in results] == [True, True, False, False]
    assert results[1].embedding == [1.0, 1.0, 0.0]
    assert results[1].dimensions == 3
    assert results[0].estimated_tokens == 2
    assert results[0].estimated_cost == pytest.approx(2 / 1_000_000 * 0.02)
    assert results[3].batch_index == 1 and results[3].position_in_batch == 1
    assert results[2].error == "quota exceeded"


def test_embeddings_similarity():
    executor = FakeExecutor(
        {
            ("POST", "embeddings"): {
                "data": [
                    {"index": 1, "embedding": [0.0, 1.0]},
                    {"index": 0, "embedding": [1.0, 1.0]},
                ]
            }
        }
    )
    score = asyncio.run(EmbeddingsResource(executor).similarity("a", "b"))
    assert score == pytest.approx(1 / 2 ** 0.5)


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([0, 0], [1, 0]) == 0.0
    with pytest.raises(ValidationFailed):
        cosine_similarity([1, 2], [1, 2, 3])


def test_moderation_scenario_risk_levels():
    response = {
        "model": "omni-moderation-2024-09-26",
        "results": [
            {"flagged": True, "categories": {"violence": True}, "category_scores": {"violence": 0.95, "hate": 0.1}},
            {"flagged": False, "categories": {"violence": False}, "category_scores": {"violence": 0.3}},
            {"flagged": True, "categories": {"hate": True, "harassment": True}, "category_scores": {"hate": 0.99, "harassment": 0.8}},
        ],
    }
    executor = FakeExecutor({("POST", "moderations"): response})
    results = asyncio.run(ModerationResource(executor).classify(["a", "b", "c"]))
    assert [r.risk_level for r in results] == ["Critical", "Safe", "Critical"]
    assert [r.requires_review for r in results] == [True, False, True]
    assert results[0].top_category == "violence"
    assert results[2].flagged_categories == ["harassment", "hate"]
    assert results[2].max_score == pytest.approx(0.99)
    assert executor.calls[0][2]["json_body"]["input"] == ["a", "b", "c"]


def test_images_generate_saves_b64_when_output_dir(tmp_path):
    png = base64.b64encode(b"image-bytes").decode()
    executor = FakeExecutor(
        {("POST", "images/generations"): {"created": 1700000000, "data": [{"b64_json": png, "revised_prompt": "A red fox"}]}}
    )
    results = asyncio.run(
        ImagesResource(executor).generate("a fox", quality="hd", output_dir=tmp_path)
    )
    body = executor.calls[0][2]["json_body"]
    assert body["response_format"] == "b64_json"
    assert len(results) == 1
    saved = tmp_path / "image_1700000000_1.png"
    assert results[0].saved_path == str(saved)
    assert saved.read_bytes() == b"image-bytes"
    assert results[0].revised_prompt == "A red fox"
    assert results[0].estimated_cost == pytest.approx(0.08)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"size": "640x480"},
        {"n": 2},
        {"quality": "ultra"},
        {"model": "dall-e-2", "style": "vivid"},
        {"n": 11, "model": "dall-e-2"},
    ],
)
def test_images_generate_validation(kwargs):
    executor = FakeExecutor()
    with pytest.raises(ValidationFailed):
        asyncio.run(ImagesResource(executor).generate("a fox", **kwargs))
    assert executor.calls == []


def test_speech_writes_audio(tmp_path):
    executor = FakeExecutor({("POST", "audio/speech"): b"ID3audio"})
    target = tmp_path / "out" / "hello.mp3"
    result = asyncio.run(AudioResource(executor).speech("hello world", voice="nova", output_path=target))
    assert executor.calls[0][2]["expect"] == "bytes"
    assert target.read_bytes() == b"ID3audio"
    assert result.bytes_written == len(b"ID3audio")
    assert result.output_path == str(target)
    assert result.estimated_cost == pytest.approx(11 / 1_000_000 * 15.0)


@pytest.mark.parametrize("kwargs", [{"voice": "robot"}, {"speed": 5.0}, {"response_format": "ogg"}])
def test_speech_validation(kwargs):
    with pytest.raises(ValidationFailed):
        asyncio.run(AudioResource(FakeExecutor()).speech("hi", **kwargs))


def test_transcribe_sends_multipart(tmp_path):
    audio = tmp_path / "memo.mp3"
    audio.write_bytes(b"\xff\xfbfake")
    executor = FakeExecutor(
        {("POST", "audio/transcriptions"): {"text": " Hello there. ", "language": "english", "duration": 30.0}}
    )
    result = asyncio.run(
        AudioResource(executor).transcribe(audio, response_format="verbose_json", temperature=0.2)
    )
    kwargs = executor.calls[0][2]
    assert kwargs["form_fields"]["model"] == "whisper-1"
    assert kwargs["form_fields"]["temperature"] == "0.2"
    assert kwargs["files"] == [("file", ("memo.mp3", b"\xff\xfbfake", "audio/mpeg"))]
    assert result.text == "Hello there."
    assert result.language == "english"
    assert result.estimated_cost == pytest.approx(0.003)


def test_transcribe_rejects_unsupported_audio(tmp_path):
    doc = tmp_path / "memo.txt"
    doc.write_text("not audio")
    executor = FakeExecutor()
    with pytest.raises(ValidationFailed):
        asyncio.run(AudioResource(executor).transcribe(doc))
    assert executor.calls == []


def test_files_roundtrip_paths(tmp_path):
    path = tmp_path / "data.jsonl"
    path.write_text("{}\n")
    executor = FakeExecutor(
        {
            ("POST", "files"): {"id": "file-1", "purpose": "batch"},
            ("GET", "files"): {"data": [{"id": "file-1"}]},
            ("GET", "files/file-1/content"): b"{}\n",
            ("DELETE", "files/file-1"): {"id": "file-1", "deleted": True},
        }
    )
    files = FilesResource(executor)
    uploaded = asyncio.run(files.upload(path, purpose="batch"))
    assert uploaded["id"] == "file-1"
    assert executor.calls[0][2]["form_fields"] == {"purpose": "batch"}
    assert asyncio.run(files.list(purpose="batch")) == [{"id": "file-1"}]
    assert asyncio.run(files.content("file-1")) == b"{}\n"
    assert executor.calls[-1][2]["expect"] == "bytes"
    assert asyncio.run(files.delete("file-1"))["deleted"] is True


def test_files_upload_validation(tmp_path):
    doc = tmp_path / "notes.txt"
    doc.write_text("x")
    files = FilesResource(FakeExecutor())
    with pytest.raises(ValidationFailed):
        asyncio.run(files.upload(doc, purpose="vision"))
    with pytest.raises(ValidationFailed):
        asyncio.run(files.upload(doc, purpose="memes"))


def test_build_batch_lines():
    jsonl = build_batch_lines(["first", "second"], model="gpt-4o-mini", system_prompt="sys")
    lines = [json.loads(line) for line in jsonl.strip().splitlines()]
    assert [line["custom_id"] for line in lines] == ["request-1", "request-2"]
    assert lines[1]["url"] == "/v1/chat/completions"
    assert lines[1]["body"]["messages"][-1] == {"role": "user", "content": "second"}
    with pytest.raises(ValidationFailed):
        build_batch_lines([], model="gpt-4o-mini")


def test_batches_submit_chat_prompts_uploads_then_creates():
    executor = FakeExecutor(
        {
            ("POST", "files"): {"id": "file-batch"},
            ("POST", "batches"): lambda kw: {"id": "batch-1", **kw["json_body"]},
        }
    )
    files = FilesResource(executor)
    batch = asyncio.run(BatchesResource(executor, files).submit_chat_prompts(["a", "b"]))
    upload_kwargs = executor.calls[0][2]
    name, content, _ = upload_kwargs["files"][0][1]
    assert name == "batch_input.jsonl"
    assert content.decode().count("\n") == 2
    assert batch["input_file_id"] == "file-batch"
    assert batch["completion_window"] == "24h"


def test_models_list_sorted_with_capabilities():
    executor = FakeExecutor({("GET", "models"): {"data": [{"id": "o3-mini"}, {"id": "gpt-4o"}]}})
    models = asyncio.run(ModelsResource(executor).list())
    assert [m["id"] for m in models] == ["gpt-4o", "o3-mini"]
    assert models[0]["vision_capable"] is True
    assert models[1]["reasoning_model"] is True
