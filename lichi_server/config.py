"""Settings loaded from LICHI_* environment variables via pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Storefront settings. Unset or empty variables keep their defaults."""

    model_config = SettingsConfigDict(env_prefix="LICHI_", case_sensitive=False, env_ignore_empty=True)

    base_url: str = Field(default="https://api.lichi.com", description="Catalog API base URL")
    shop: int = Field(default=2, description="Shop (storefront region) ID")
    lang: int = Field(default=1, description="Language ID")
    category_scope: str = Field(default="clothes", description="Catalog section to list categories of")
    store_file: str = Field(
        default_factory=lambda: str(Path.home() / ".lichi_store.json"),
        description="Path of the JSON file holding the persisted cart",
    )
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
