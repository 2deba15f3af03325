"""
Generator configuration defaults
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Defaults for the wirecraft CLI, overridable from the environment"""

    model_config = SettingsConfigDict(env_prefix="WIRECRAFT_", env_file=".env")

    log_level: str = "WARNING"

    # Generation
    languages: list[str] = ["python", "typescript", "go", "rust"]
    parallel: bool = True
    max_workers: Optional[int] = None
    runtime_import: str = "wirecraft.proto"
    output_dir: Path = Path("generated")


settings = Settings()
