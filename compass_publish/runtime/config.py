"""Configuration settings for a publish run."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CERAMIC_TESTNET_NODE_URL = "https://ceramic-clay.3boxlabs.com"

WEB3STORAGE_API_URL = "https://api.web3.storage"

# alsoKnownAs definition of the core identity model (@datamodels/identity-accounts-web)
CORE_ALSO_KNOWN_AS_DEFINITION = "kjzl6cwe1jw146zfmqa10a5x1vry6au3t362p44uttz4l0k4hi88o41zplhmxnf"


class Settings(BaseSettings):
    """Run settings loaded from environment variables (or a .env file).

    Secrets:
    - WEB3STORAGE_TOKEN: bearer token for the storage API
    - DID_KEY: hex-encoded 32-byte Ed25519 seed of the publishing identity

    GITHUB_EVENT_PATH is set by GitHub Actions and points at the JSON
    payload of the triggering event.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Secrets
    web3storage_token: str = Field(..., repr=False)
    did_key: str = Field(..., repr=False)

    # Target
    dcompass_project_id: str
    projects_alias: str = "@dCompass/appprojects"
    also_known_as_definition: str = CORE_ALSO_KNOWN_AS_DEFINITION

    # Backends
    ceramic_node_url: str = CERAMIC_TESTNET_NODE_URL
    web3storage_endpoint: str = WEB3STORAGE_API_URL
    http_timeout: float = 30.0

    # Local inputs
    gitbook_path: Path = Path("test_files")
    published_model_path: Path = Path("model.json")
    github_event_path: Optional[Path] = None

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
