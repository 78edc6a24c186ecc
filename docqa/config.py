"""Application configuration with sensible defaults."""
import os
from pathlib import Path


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DOCQA_DATA_DIR", str(BASE_DIR / "data")))
STORAGE_DIR = DATA_DIR / "files"
INDEX_DIR = DATA_DIR

# Ensure data directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
STORAGE_DIR.mkdir(exist_ok=True)

# Hosted model API (OpenAI-compatible)
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "1536"))
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.2"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60.0"))

# Chunking (word windows measured in characters)
CHUNK_MAX_CHARS = int(os.getenv("CHUNK_MAX_CHARS", "1000"))
CHUNK_OVERLAP_CHARS = int(os.getenv("CHUNK_OVERLAP_CHARS", "200"))

# Retrieval
RETRIEVAL_LIMIT = int(os.getenv("RETRIEVAL_LIMIT", "5"))
SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.5"))
FALLBACK_LIMIT = int(os.getenv("FALLBACK_LIMIT", "10"))

# Ingestion
EMBEDDING_CONCURRENCY = int(os.getenv("EMBEDDING_CONCURRENCY", "4"))

# Documents
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))
ALLOWED_EXTENSIONS = (".txt", ".md", ".pdf", ".docx")
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))

# Database
DB_PATH = DATA_DIR / "docqa.sqlite"

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))

# Logging & diagnostics
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG_ERRORS = _env_bool("DEBUG_ERRORS")
