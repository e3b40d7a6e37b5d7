from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Box Tracker"
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"

    # Security (tokens are issued by the external auth provider)
    SECRET_KEY: str
    ACCESS_TOKEN_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    CORS_ORIGINS: List[str] = ["*"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            v = v.strip("[").strip("]").strip('"').strip("'")
            if not v:
                return []
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Database - should be provided via DATABASE_URL env var
    DATABASE_URL: str = "sqlite+aiosqlite:///./boxtracker.db"

    # Geocoding
    GEOCODING_API_KEY: str = ""
    GEOCODING_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Spreadsheet holding the location suggestions
    SHEETS_API_KEY: str = ""
    SHEETS_API_URL: str = "https://sheets.googleapis.com/v4/spreadsheets"
    SPREADSHEET_ID: str = ""
    SHEET_NAME: str = "Sheet1"
    SHEET_RANGE: str = "A:G"

    # Mail
    MAILGUN_API_KEY: str = ""
    MAILGUN_DOMAIN: str = ""
    MAILGUN_BASE_URL: str = "https://api.mailgun.net/v3"
    REPORT_RECIPIENT_EMAIL: str = "toysfortots@qlamail.com"

    # Blob storage for the generated locations cache
    BLOB_STORAGE_DIR: str = "blobs"
    PUBLIC_BASE_URL: str = "http://localhost:8000/blobs"
    LOCATIONS_CACHE_PATH: str = "cache/locations.json"
    LOCATIONS_CACHE_MAX_AGE: int = 3600

    # Scheduled jobs
    ENABLE_SCHEDULER: bool = False
    SUGGESTION_SYNC_INTERVAL_SECONDS: int = 600
    CACHE_REFRESH_INTERVAL_SECONDS: int = 6 * 60 * 60

    OUTBOUND_TIMEOUT_SECONDS: float = 10.0

    # Only used by init_db to seed the shared config row when it is missing
    INITIAL_PASSCODE: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file="backend_config.env",
        env_file_encoding="utf-8"
    )

settings = Settings()
