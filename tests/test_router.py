import pytest

from oaiwrap.core.errors import ValidationFailed
from oaiwrap.router import PromptType, coerce_prompt_type, route_prompt


@pytest.mark.parametrize(
    "text,has_images,expected",
    [
        ("", True, PromptType.VISION),
        ("draw a cat", False, PromptType.IMAGE_GENERATION),
        ("say hello", False, PromptType.SPEECH),
        ("check this for violations", False, PromptType.MODERATION),
        ("generic question", False, PromptType.CHAT),
    ],
)
def test_route_prompt_precedence(text, has_images, expected):
    assert route_prompt(text, has_images) is expected


def test_images_win_over_every_keyword():
    assert route_prompt("please transcribe and say this", True) is PromptType.VISION


def test_image_verb_needs_image_noun():
    assert route_prompt("Generate a picture of a lighthouse at dusk") is PromptType.IMAGE_GENERATION
    assert route_prompt("create a summary of this article") is PromptType.CHAT


def test_speech_to_text_is_transcription():
    assert route_prompt("convert this speech to text") is PromptType.TRANSCRIPTION
    assert route_prompt("transcribe the meeting recording") is PromptType.TRANSCRIPTION


def test_embedding_and_moderation_keywords():
    assert route_prompt("compute the similarity of these sentences") is PromptType.EMBEDDING
    assert route_prompt("is this comment offensive?") is PromptType.MODERATION


def test_earlier_rule_wins_when_several_match():
    # speech appears before moderation in the rule order
    assert route_prompt("say whether this is appropriate") is PromptType.SPEECH


def test_route_prompt_handles_none():
    assert route_prompt(None) is PromptType.CHAT


def test_coerce_prompt_type():
    assert coerce_prompt_type("image-generation") is PromptType.IMAGE_GENERATION
    assert coerce_prompt_type(PromptType.CHAT) is PromptType.CHAT
    with pytest.raises(ValidationFailed):
        coerce_prompt_type("telepathy")
