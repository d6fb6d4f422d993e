#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings

from .constants import (
    PROVIDER_TIMEOUT_SECONDS,
    STAGE_MAX_RETRIES,
    STAGE_RETRY_BASE_DELAY,
    STAGE_RETRY_MAX_DELAY,
    RETRIEVAL_TOP_K,
    RETRIEVAL_THRESHOLD,
    LOW_CONFIDENCE_THRESHOLD,
    CHUNK_WORDS_PER_CHUNK,
    VECTOR_STORE_PATH,
    REFERENCES_DIR,
    DOCUMENTS_DB_PATH,
    LOG_LEVEL,
    LOG_FILE,
)


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== API Keys ==========
    gemini_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # ========== Completion Provider ==========
    completion_provider: str = "gemini"  # gemini | openai | anthropic
    completion_model: str = ""  # empty uses the provider default model
    max_tokens: int = 8192
    temperature: float = 0.2

    # ========== Embedding Provider ==========
    embedding_provider: str = "gemini"  # gemini | openai | ollama
    gemini_embedding_model: str = "models/text-embedding-004"
    openai_embedding_model: str = "text-embedding-3-small"
    ollama_base_url: str = "http://localhost:11434"
    ollama_embedding_model: str = "nomic-embed-text"

    # ========== Resilience ==========
    provider_timeout_seconds: float = PROVIDER_TIMEOUT_SECONDS
    stage_max_retries: int = STAGE_MAX_RETRIES
    retry_base_delay: float = STAGE_RETRY_BASE_DELAY
    retry_max_delay: float = STAGE_RETRY_MAX_DELAY

    # ========== Retrieval ==========
    retrieval_top_k: int = RETRIEVAL_TOP_K  # grammar stage grounding
    retrieval_threshold: float = RETRIEVAL_THRESHOLD
    chunk_size_words: int = CHUNK_WORDS_PER_CHUNK

    # ========== Quality ==========
    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD

    # ========== Storage ==========
    vector_store_path: Path = BASE_DIR / VECTOR_STORE_PATH
    references_dir: Path = BASE_DIR / REFERENCES_DIR
    documents_db_path: Path = BASE_DIR / DOCUMENTS_DB_PATH

    # ========== Logging ==========
    log_level: str = LOG_LEVEL
    log_file: str = LOG_FILE  # empty disables the rotating file

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def describe(self) -> dict:
        """Configuration summary without secrets"""
        return {
            "completion_provider": self.completion_provider,
            "completion_model": self.completion_model,
            "embedding_provider": self.embedding_provider,
            "provider_timeout_seconds": self.provider_timeout_seconds,
            "stage_max_retries": self.stage_max_retries,
            "retrieval_top_k": self.retrieval_top_k,
            "retrieval_threshold": self.retrieval_threshold,
            "chunk_size_words": self.chunk_size_words,
            "vector_store_path": str(self.vector_store_path),
            "documents_db_path": str(self.documents_db_path),
        }


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()
