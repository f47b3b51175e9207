from pydantic_settings import BaseSettings
from pathlib import Path

# Get the repository root directory (parent of archflow directory)
REPO_ROOT = Path(__file__).parent.parent.absolute()

class Settings(BaseSettings):
    """Application settings."""
    
    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = True
    
    # Version and environment
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    
    # Storage settings
    STORAGE_TYPE: str = "filesystem"  # "filesystem" or "s3"
    FLOW_STORAGE_DIR: str = str(REPO_ROOT / "storage" / "flows")
    
    # S3 settings (only used if STORAGE_TYPE = "s3")
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    S3_BUCKET: str = "archflow-flows"
    
    # Editor engine
    SAVE_DEBOUNCE_SECONDS: float = 1.0
    MODEL_CATALOGUE_FILE: str = ""  # OpenRouter-style /models payload, optional
    
    class Config:
        env_file = ".env"

settings = Settings()
