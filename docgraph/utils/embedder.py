# -*- coding: utf-8 -*-
"""
Embedding providers for docgraph

Anything with embed_single(text) -> np.ndarray and get_embedding_dim() -> int
can be injected into the engine. SentenceTransformerEmbedder is the shipped
implementation.

Example:
    embedder = SentenceTransformerEmbedder(device='cpu')
    vector = embedder.embed_single("How do I reset my password?")
    assert vector.shape == (embedder.get_embedding_dim(),)
"""

import logging
from typing import Optional, Protocol

import numpy as np
from sentence_transformers import SentenceTransformer

from config.search_config import EMBEDDING_CONFIG

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Contract for embedding collaborators (deterministic within one build)."""

    def embed_single(self, text: str) -> np.ndarray:
        ...

    def get_embedding_dim(self) -> int:
        ...


class SentenceTransformerEmbedder:
    """
    sentence-transformers embedder.

    Model: BAAI/bge-small-en-v1.5 by default (384 dimensions, English),
    overridable with DOCGRAPH_EMBEDDING_MODEL.
    """

    def __init__(self, model_name: str = None, device: Optional[str] = None,
                 normalize: bool = None):
        """
        Args:
            model_name: HuggingFace model identifier
            device: 'cpu', 'cuda', or None for auto-detect
            normalize: L2-normalise output vectors
        """
        self.model_name = model_name or EMBEDDING_CONFIG['model_name']
        device = device if device is not None else EMBEDDING_CONFIG['device']
        self.normalize = EMBEDDING_CONFIG['normalize'] if normalize is None else normalize

        logger.info(f"Loading embedding model: {self.model_name}")
        self.model = SentenceTransformer(self.model_name, device=device)
        self.embedding_dim = int(self.model.get_sentence_embedding_dimension())

        logger.info(f"Model loaded on device: {self.model.device}")
        logger.info(f"Embedding dimension: {self.embedding_dim}")

    @property
    def name(self) -> str:
        return self.model_name

    def embed_single(self, text: str) -> np.ndarray:
        """Embed a single text as a float32 vector."""
        embedding = self.model.encode(
            text,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )
        return np.asarray(embedding, dtype=np.float32)

    def get_embedding_dim(self) -> int:
        return self.embedding_dim


def provider_name(provider) -> str:
    """Stable identity of a provider for the config fingerprint."""
    return getattr(provider, 'name', None) or type(provider).__name__
