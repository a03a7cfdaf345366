"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. Environment variables, e.g. ``CHUNK_SIZE=800`` (always wins)
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; defaults apply
when neither source sets a value.

The provider credentials below are only used to seed the provider-config
table on first start.  At runtime the active provider is whatever row the
admin API marks active/default, so changing providers never needs a restart.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """notebook_rag application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Bootstrap provider credentials ===
    # Empty string = "not configured"; the seeding logic in main.py skips
    # providers with empty keys and falls through to the next.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_chat_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-ada-002"
    anthropic_api_key: str = ""
    anthropic_chat_model: str = "claude-sonnet-4-20250514"
    gemini_api_key: str = ""
    gemini_chat_model: str = "gemini-1.5-flash"
    ollama_base_url: str = "http://localhost:11434"
    ollama_chat_model: str = "llama3.1"

    # === LLM call defaults (per-call overrides and stored extra_config win) ===
    llm_default_temperature: float = 0.7
    llm_default_max_tokens: int = 1000
    llm_timeout_seconds: float = 60.0

    # === Storage ===
    database_path: str = "data/notebooks.db"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "notebook_chunks"
    upload_dir: str = "data/uploads"
    audio_dir: str = "data/audio"

    # === Ingestion ===
    chunk_size: int = 1000
    chunk_overlap: int = 200
    summary_input_chars: int = 5000
    http_timeout: float = 30.0

    # === Retrieval / chat ===
    retrieval_top_k: int = 5
    chat_history_limit: int = 10

    # === Notebook generation / audio overview ===
    source_excerpt_chars: int = 1000
    notebook_generation_source_limit: int = 5
    audio_url_ttl_hours: int = 24

    # === Background worker ===
    worker_max_concurrency: int = 4

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_bootstrap_providers(self) -> list[str]:
        """Return provider names that can be seeded from the environment.

        Priority order: Anthropic -> OpenAI -> Gemini -> Ollama.  Ollama is
        listed whenever a base URL is set since it needs no API key.
        """
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.gemini_api_key:
            providers.append("gemini")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
