"""
Vinofind Configuration
Centralized settings for the application
"""

import os

from dotenv import load_dotenv

load_dotenv()

# OpenAI Model Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "300"))

# Embeddings
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBED_TIMEOUT_SECONDS = float(os.getenv("EMBED_TIMEOUT_SECONDS", "5.0"))

# Caching
CACHE_DIR = os.getenv("CACHE_DIR", os.path.join(".cache", "vinofind"))
CACHE_TTL_HOURS = int(os.getenv("CACHE_TTL_HOURS", "24"))

# Remote catalog sources (optional)
CATALOG_CSV_URL = os.getenv("CATALOG_CSV_URL")
EMBEDDINGS_URL = os.getenv("EMBEDDINGS_URL")
