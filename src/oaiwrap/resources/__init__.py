from .assistants import AssistantsResource
from .audio import AudioResource, SpeechResult, TranscriptionResult
from .batches import BatchesResource, build_batch_lines
from .chat import ChatResource, ChatResult
from .embeddings import EmbeddingResult, EmbeddingsResource, cosine_similarity
from .files import FilesResource
from .images import ImageResult, ImagesResource
from .messages import MessagesResource, message_text
from .models import ModelsResource
from .moderation import ModerationResource, ModerationResult
from .runs import RunStatus, RunsResource
from .threads import ThreadsResource

__all__ = [
    "AssistantsResource",
    "AudioResource",
    "BatchesResource",
    "ChatResource",
    "ChatResult",
    "EmbeddingResult",
    "EmbeddingsResource",
    "FilesResource",
    "ImageResult",
    "ImagesResource",
    "MessagesResource",
    "ModelsResource",
    "ModerationResource",
    "ModerationResult",
    "RunStatus",
    "RunsResource",
    "SpeechResult",
    "ThreadsResource",
    "TranscriptionResult",
    "build_batch_lines",
    "cosine_similarity",
    "message_text",
]
