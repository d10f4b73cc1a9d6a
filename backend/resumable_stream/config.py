from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Redis
    REDIS_URL: str = "redis://localhost:6379"
    STREAM_KEY_PREFIX: str = "llm:stream:"
    REPLAY_GROUP_PREFIX: str = "sse-group-"
    RELAY_CONSUMER_NAME: str = "consumer-1"
    STREAM_MAXLEN: Optional[int] = None

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    SSE_PING_SECONDS: int = 15

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Generation
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    STREAM_ERRORS_IN_BAND: bool = False

    class Config:
        env_file = ".env"
        extra = "allow"  # Allow extra environment variables


settings = Settings()
