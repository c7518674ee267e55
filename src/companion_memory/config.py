"""Companion memory configuration models."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class StorageConfig(BaseModel):
    """Document store backend and paths."""

    backend: Literal["memory", "json", "sqlite"] = "json"
    json_path: str = "./memory/documents"
    sqlite_db_path: str = "./memory/companion.db"

    @model_validator(mode="after")
    def _validate_paths(self) -> "StorageConfig":
        for attr in ("json_path", "sqlite_db_path"):
            value = getattr(self, attr)
            normalized = os.path.normpath(value)
            parts = normalized.replace("\\", "/").split("/")
            if ".." in parts:
                raise ValueError(
                    f"{attr} must not contain '..' components: {value!r}"
                )
            setattr(self, attr, normalized)
        return self


class SessionConfig(BaseModel):
    """Session boundary and context window."""

    idle_timeout_seconds: float = 3600.0
    context_limit: int = 10


class MemoryLimitsConfig(BaseModel):
    """Caps and scoring constants for long-term memory."""

    max_facts: int = 50
    max_summaries: int = 10
    max_interests: int = 20
    initial_confidence: float = 0.5
    confidence_step: float = 0.1
    min_fact_length: int = 6
    snapshot_summaries: int = 3


class CompactionConfig(BaseModel):
    """Session compaction settings."""

    enabled: bool = True
    probability: float = Field(default=0.1, ge=0.0, le=1.0)
    batch_limit: int = 20
    min_messages: int = 11  # sessions with fewer messages are skipped
    keep_messages: int = 5
    placeholder_summary: str = "Conversation summary (compressed)"


class GenerationConfig(BaseModel):
    """OpenAI-compatible generation endpoint."""

    base_url: str | None = None
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    timeout_seconds: float = 30.0
    temperature: float = 0.7


class WorkerConfig(BaseModel):
    """Background post-processing pool."""

    worker_count: int = 2
    max_queue_size: int = 1000
    stop_timeout_seconds: float = 5.0


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5000

    @model_validator(mode="after")
    def _check_port(self) -> "ServerConfig":
        if self.port < 0 or self.port > 65535:
            raise ValueError("Port must be between 0 and 65535")
        return self


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: str | None = None


class EngineConfig(BaseModel):
    """Top-level configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    memory: MemoryLimitsConfig = Field(default_factory=MemoryLimitsConfig)
    compaction: CompactionConfig = Field(default_factory=CompactionConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    workers: WorkerConfig = Field(default_factory=WorkerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
