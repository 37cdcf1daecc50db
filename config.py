"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parent / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(extra="ignore", case_sensitive=False)

    # Application
    app_name: str = "Portfolio Backend"
    app_version: str = "2.0.1"
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="'text' or 'json'")
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=5000, ge=1, le=65535, description="API port")

    # CORS
    client_url: Optional[str] = Field(default=None, description="Frontend origin")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5000",
        description="Allowed CORS origins (comma-separated)"
    )
    allowed_origin_regex: Optional[str] = Field(
        default=r"https://.*\.vercel\.app",
        description="Regex for preview deployments"
    )

    # Database
    database_url: str = Field(default="mongodb://localhost:27017", description="MongoDB URI")
    database_name: str = Field(default="portfolio", description="MongoDB database name")
    database_timeout_ms: int = Field(default=5000, ge=1, description="Server selection timeout")

    # Mail
    email_host: str = Field(default="smtp.gmail.com")
    email_port: int = Field(default=587, ge=1, le=65535)
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_to: Optional[str] = None

    # GitHub
    github_username: Optional[str] = None
    github_token: Optional[str] = None
    github_api_url: str = Field(default="https://api.github.com")
    github_timeout: float = Field(default=10.0, gt=0)

    # Features
    projects_source: str = Field(default="github", description="'github' or 'database'")
    enable_admin_routes: bool = Field(default=False)
    contact_fallback_email: Optional[str] = Field(default=None, description="Address quoted in 500 responses")

    @field_validator("projects_source")
    @classmethod
    def validate_projects_source(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("github", "database"):
            raise ValueError("projects_source must be 'github' or 'database'")
        return v

    @property
    def origins_list(self) -> List[str]:
        """Explicit CORS origins, including the frontend url"""
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        if self.client_url and self.client_url not in origins:
            origins.append(self.client_url)
        return origins

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
