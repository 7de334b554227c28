from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Empty key is fine for local OpenAI-compatible servers (Ollama, vLLM)
    openai_api_key: SecretStr = SecretStr("")

    llm_base_url: str = "http://localhost:11434/v1"
    llm_model: str = "qwen3:0.6b"
    llm_model_family: str = "Qwen3"  # selects the document polyfill
    llm_temperature: float = 0.6
    llm_timeout: float = 120.0

    embedding_base_url: str = "http://localhost:11434/v1"
    embedding_model: str = "bge-m3"
    embedding_dimension: int = 1024  # bge-m3 output size
    embedding_timeout: float = 60.0
    embedding_batch_size: int = 20

    chunk_size: int = 500
    retrieval_top_k: int = 5

    data_root_path: str = "./data"
    documents_file: str = "documents.json"
    seed_sample_document: bool = True

    max_messages_per_session: int | None = None

    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
