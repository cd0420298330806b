"""
Service classes and strategies for the cvs app.

Text extraction from uploaded files, embeddings and chat completions
are each hidden behind a small abstraction so views and other apps
depend on the interface rather than on OpenAI or PyPDF2 (Strategy
pattern).  When no OpenAI key is configured the embedding service falls
back to a deterministic local model and the chat service is absent,
which callers treat as "AI unavailable".
"""

from __future__ import annotations

import hashlib
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from django.conf import settings
from openai import OpenAI
from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)


class FileExtractionStrategy(ABC):
    """Abstract base class for strategies that extract text from uploaded files."""

    @abstractmethod
    def extract(self, file) -> str:
        """Return the extracted text from the given file object."""


class PdfExtractionStrategy(FileExtractionStrategy):
    """Extract text from PDF files using PyPDF2."""

    def extract(self, file) -> str:
        reader = PdfReader(file)
        return "\n".join(page.extract_text() or "" for page in reader.pages)


class TextExtractionStrategy(FileExtractionStrategy):
    """Extract text from plain text files by decoding as UTF-8."""

    def extract(self, file) -> str:
        data = file.read()
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return str(data)


def get_extraction_strategy(filename: str) -> FileExtractionStrategy:
    """Return an appropriate extraction strategy based on file extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext == "pdf":
        return PdfExtractionStrategy()
    return TextExtractionStrategy()


class EmbeddingService(ABC):
    """Abstract base class for services that compute embeddings for text."""

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Return the embedding of the given text as a numpy array."""


class OpenAIEmbeddingService(EmbeddingService):
    """Embedding service backed by the OpenAI API."""

    def __init__(self, api_key: str, model: str = "text-embedding-3-small") -> None:
        self.client = OpenAI(api_key=api_key)
        self.model = model

    def embed(self, text: str) -> np.ndarray:
        response = self.client.embeddings.create(input=[text or " "], model=self.model)
        return np.array(response.data[0].embedding, dtype=np.float32)


class HashingEmbeddingService(EmbeddingService):
    """Local bag-of-words embedding.

    Every lower-cased word is hashed (md5, so results are stable across
    processes) into one of ``dimension`` buckets and the counts are
    L2-normalised.  Texts sharing vocabulary get a high cosine
    similarity, which is enough for ranking without a remote model.
    """

    TOKEN_RE = re.compile(r"[a-z0-9+#]+")

    def __init__(self, dimension: int = 512) -> None:
        self.dimension = dimension

    def embed(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float32)
        for token in self.TOKEN_RE.findall((text or "").lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "little") % self.dimension] += 1.0
        norm = np.linalg.norm(vector)
        if norm:
            vector /= norm
        return vector


class FallbackEmbeddingService(EmbeddingService):
    """Use ``primary`` and switch to ``fallback`` when it raises."""

    def __init__(self, primary: EmbeddingService, fallback: EmbeddingService) -> None:
        self.primary = primary
        self.fallback = fallback

    def embed(self, text: str) -> np.ndarray:
        try:
            return self.primary.embed(text)
        except Exception:
            logger.warning("Embedding service failed, using local embeddings", exc_info=True)
            return self.fallback.embed(text)


def get_embedding_service() -> EmbeddingService:
    """Select an embedding service based on settings."""
    if settings.OPENAI_API_KEY:
        return FallbackEmbeddingService(
            OpenAIEmbeddingService(settings.OPENAI_API_KEY, settings.OPENAI_EMBEDDING_MODEL),
            HashingEmbeddingService(),
        )
    return HashingEmbeddingService()


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Compute the cosine similarity between two vectors (0 when undefined)."""
    if a.shape != b.shape:
        return 0.0
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0:
        return 0.0
    return float(np.dot(a, b) / denom)


def embedding_to_bytes(vector: np.ndarray) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def embedding_from_bytes(data: Optional[bytes]) -> Optional[np.ndarray]:
    if not data:
        return None
    return np.frombuffer(bytes(data), dtype=np.float32)


def match_score(text_a: str, text_b: str, service: Optional[EmbeddingService] = None) -> float:
    """Similarity of two texts as a 0-100 score."""
    service = service or get_embedding_service()
    similarity = cosine_similarity(service.embed(text_a), service.embed(text_b))
    return round(max(0.0, min(1.0, similarity)) * 100, 2)


class ChatService(ABC):
    """Abstract base class for text-generation backends."""

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int = 1024) -> str:
        """Return the model's answer to ``prompt``."""


class OpenAIChatService(ChatService):
    def __init__(self, api_key: str, model: str = "gpt-3.5-turbo") -> None:
        self.client = OpenAI(api_key=api_key)
        self.model = model

    def complete(self, prompt: str, max_tokens: int = 1024) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=0.7,
        )
        return (response.choices[0].message.content or "").strip()


def get_chat_service() -> Optional[ChatService]:
    """The configured chat backend, or ``None`` when AI is not configured."""
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAIChatService(settings.OPENAI_API_KEY, settings.OPENAI_CHAT_MODEL)
