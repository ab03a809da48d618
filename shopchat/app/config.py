#!/usr/bin/env python3
"""
Configuration management for the shop chatbot backend.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Config:
    """Configuration class for the application."""

    # Groq API Configuration (OpenAI-compatible chat completions)
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    GROQ_API_URL = os.getenv("GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions")
    GROQ_LLM_MODEL = os.getenv("GROQ_LLM_MODEL", "llama-3.1-8b-instant")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", 30))

    # Intent extraction favours determinism, reply generation favours phrasing
    INTENT_TEMPERATURE = 0.1
    INTENT_MAX_TOKENS = 500
    RESPONSE_TEMPERATURE = 0.7
    RESPONSE_MAX_TOKENS = 1000

    # Database Configuration
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(os.path.dirname(__file__), "..", "data", "shopchat.db"),
    )

    # Redis Configuration (rate limiting)
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB = int(os.getenv("REDIS_DB", 0))
    RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 15 * 60))
    RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", 100))

    # Server Configuration
    APP_ENV = os.getenv("APP_ENV", "development").lower()
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
    PORT = int(os.getenv("PORT", 5000))
    MAX_REQUEST_BYTES = int(os.getenv("MAX_REQUEST_BYTES", 10 * 1024 * 1024))

    # Application Configuration
    DEFAULT_USER_ID = "anonymous"
    DEFAULT_TITLE = "New Conversation"
    TITLE_MAX_CHARS = 50
    MAX_PRODUCT_RESULTS = 10
    MAX_ORDER_RESULTS = 20
    MAX_CONTEXT_PRODUCTS = 5
    MAX_CONVERSATIONS = 50

    @classmethod
    def is_development(cls) -> bool:
        return cls.APP_ENV == "development"

    @classmethod
    def debug_print(cls):
        print(f"[CONFIG] APP_ENV={cls.APP_ENV}")
        print(f"[CONFIG] GROQ_MODEL={cls.GROQ_LLM_MODEL} set={bool(cls.GROQ_API_KEY)}")
        print(f"[CONFIG] DATABASE_URL={cls.DATABASE_URL}")
        print(f"[CONFIG] REDIS={cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}")

    @classmethod
    def validate(cls):
        """Validate that all required configuration is present."""
        missing = []

        # Allow a 'test' sentinel value to skip enforcing external API keys during local tests
        if cls.APP_ENV == "production":
            if not cls.GROQ_API_KEY or cls.GROQ_API_KEY in ("test", "dev"):
                missing.append("GROQ_API_KEY")
            if not cls.DATABASE_URL:
                missing.append("DATABASE_URL")

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True
