from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "QueryChart API"
    API_V1_PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    # LLM providers
    LLM_PROVIDER: str = "huggingface"  # or "ollama"
    API_KEY: str = ""
    HF_MODEL: str = "mistralai/Mistral-7B-Instruct-v0.3"
    HF_INFERENCE_URL: str = "https://router.huggingface.co/hf-inference/models"
    OLLAMA_HOST: str = "http://ollama:11434"
    OLLAMA_MODEL: str = "gemma:2b"
    LLM_HTTP_TIMEOUT: float = 120.0

    # DB
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "postgres"
    DATABASE_URL: str = ""
    DB_POOL_SIZE: int = 10

    # Pipeline
    REQUEST_TIMEOUT: float = 180.0
    DRAFT_RETRIES: int = 0
    REFINE_RETRIES: int = 0
    FINALIZE_RETRIES: int = 0
    CHART_RETRIES: int = 0
    RETRY_BACKOFF: float = 0.5
    RETRY_BACKOFF_MAX: float = 8.0
    SQL_GRAMMAR_CHECK: bool = False
    SQL_DIALECT: str = "postgres"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

settings = Settings()
