# src/config/config.py
from pathlib import Path
import os
from dotenv import load_dotenv

# Load .env from project root only in development (not in Docker)
if os.getenv("APP_ENV", "development") != "production":
    project_root = Path(__file__).parent.parent.parent  # src/config → project root
    load_dotenv(project_root / ".env")

BASE_DIR = Path(__file__).parent.parent  # src/


class BaseConfig:
    # 1. Application root: relative library roots, assets and config are anchored here
    APP_ROOT = Path(os.getenv("APP_ROOT", BASE_DIR.parent))

    # 2. Environment name reported by the app environment
    APP_ENV = os.getenv("APP_ENV", "development")

    # 3. Folders below the application root (may also be absolute)
    CONFIG_ROOT = os.getenv("CONFIG_ROOT", "config")
    ASSETS_ROOT = os.getenv("ASSETS_ROOT", "assets")

    # 4. Writable data: logs and the scan status file
    DATA_ROOT = Path(os.getenv("DATA_ROOT", APP_ROOT / "data"))

    # Derived paths
    LIBRARY_CONFIG = Path(os.getenv("LIBRARY_CONFIG", APP_ROOT / CONFIG_ROOT / "library.yml"))
    LOG_DIR = DATA_ROOT / "logs"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def ensure_dirs(cls):
        cls.DATA_ROOT.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestConfig(BaseConfig):
    APP_ENV = "test"
    APP_ROOT = Path("/tmp/karaoke-test-app")  # isolated for tests
    DATA_ROOT = APP_ROOT / "data"
    LIBRARY_CONFIG = APP_ROOT / "config" / "library.yml"
    LOG_DIR = DATA_ROOT / "logs"


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "production"
