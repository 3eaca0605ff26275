"""
Tests for the hashed embedder.

Tests:
- Tokenization
- Fixed output dimension and zero vector for degenerate input
- Determinism and normalization
- Bucket selection from the sha256 digest
"""

import hashlib
import math

import pytest

from vector_mcp.retrieval.embedder import HashingEmbedder, embed, normalize, tokenize


class TestTokenize:
    """Test suite for tokenize()."""

    def test_tokenize_basic(self):
        """Test basic tokenization."""
        assert tokenize("read file from disk") == ["read", "file", "from", "disk"]

    def test_tokenize_lowercases_and_keeps_underscores(self):
        """Underscores and digits stay inside tokens; case is folded."""
        tokens = tokenize("READ_File v2, Write!")
        assert tokens == ["read_file", "v2", "write"]

    def test_tokenize_special_characters(self):
        """Special characters split tokens."""
        assert tokenize("hello@world.com#test") == ["hello", "world", "com", "test"]

    def test_tokenize_non_ascii_dropped(self):
        """Characters outside [a-z0-9_] never form tokens."""
        assert tokenize("héllo — ∑") == ["h", "llo"]


class TestEmbed:
    """Test suite for embed()."""

    @pytest.mark.parametrize("dim", [1, 8, 64, 384])
    def test_embed_returns_dim_elements(self, dim):
        """Every embedding has exactly dim elements."""
        assert len(embed("manage tasks and reminders", dim)) == dim

    def test_empty_text_is_zero_vector(self):
        """Empty input yields the all-zero vector."""
        assert embed("", 32) == [0.0] * 32

    def test_punctuation_only_is_zero_vector(self):
        """Input with no alphanumeric tokens also yields the zero vector."""
        assert embed("!!! --- ???", 16) == [0.0] * 16

    def test_embedding_is_deterministic(self):
        """Same (text, dim) always produces an identical vector."""
        assert embed("image generation art prompt", 64) == embed("image generation art prompt", 64)

    def test_embedding_normalization(self):
        """Non-empty embeddings have unit length."""
        vector = embed("a very long test tool for testing normalization", 64)
        magnitude = math.sqrt(sum(x * x for x in vector))
        assert abs(magnitude - 1.0) < 1e-9

    def test_bucket_uses_first_two_digest_bytes(self):
        """A single token lands in the bucket given by sha256[:2] mod dim."""
        dim = 50
        digest = hashlib.sha256(b"tasks").digest()
        expected = int.from_bytes(digest[:2], "big") % dim

        vector = embed("tasks", dim)

        assert vector[expected] == 1.0
        assert sum(vector) == 1.0

    def test_repeated_tokens_accumulate(self):
        """Repeating a token does not change the direction of a one-token text."""
        assert embed("tasks tasks tasks", 32) == embed("tasks", 32)

    def test_case_insensitive(self):
        """Embedding ignores case."""
        assert embed("Manage TASKS", 32) == embed("manage tasks", 32)

    def test_invalid_dim_rejected(self):
        """Non-positive dimensions are a programming error."""
        with pytest.raises(ValueError):
            embed("text", 0)


class TestHashingEmbedder:
    """Test suite for HashingEmbedder."""

    def test_default_dimension(self):
        """Default dimension is 384."""
        assert HashingEmbedder().dim == 384

    def test_embed_matches_function(self):
        """The wrapper delegates to embed() with its fixed dimension."""
        embedder = HashingEmbedder(48)
        assert embedder.embed("send email") == embed("send email", 48)

    def test_normalize_leaves_zero_vector(self):
        """normalize() returns the zero vector unchanged."""
        assert normalize([0.0, 0.0]) == [0.0, 0.0]
