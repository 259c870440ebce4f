import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    API_BASE_URL = os.environ.get("LINKSHELF_API_URL", "http://localhost:5000/api")
    API_TOKEN = os.environ.get("LINKSHELF_TOKEN") or None
    REMOTE_TIMEOUT = float(os.environ.get("LINKSHELF_REMOTE_TIMEOUT", "10"))
    LOCAL_STORE_DIR = Path(
        os.environ.get("LINKSHELF_DATA_DIR", str(Path.home() / ".linkshelf"))
    )
    LOCAL_STORE_KEY = os.environ.get("LINKSHELF_STORE_KEY", "bookmark_manager_data")
    SEARCH_THRESHOLD = float(os.environ.get("LINKSHELF_SEARCH_THRESHOLD", "0.4"))
    SEARCH_LIMIT = int(os.environ.get("LINKSHELF_SEARCH_LIMIT", "0"))


class TestConfig(Config):
    API_BASE_URL = "http://linkshelf.test/api"
    API_TOKEN = None
    REMOTE_TIMEOUT = 2.0
    LOCAL_STORE_DIR = BASE_DIR / ".linkshelf-test"
