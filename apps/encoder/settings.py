# settings.py
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# apps/encoder/settings.py -> project root holds the .env file
PROJECT_ROOT = Path(__file__).resolve().parents[2]
env_file_path = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    # Remote encode/decode service
    service_url: str = "http://127.0.0.1:8000"
    encode_path: str = "/encode"
    request_timeout: float = 30.0

    # Model artifact. A relative path is resolved against the project root.
    model_path: Path = Path("models") / "encodec_model.onnx"
    model_repo_id: Optional[str] = None
    model_filename: str = "encodec_model.onnx"
    model_revision: Optional[str] = None

    # Explicit output names; when unset the first two declared outputs are used.
    tokens_output: Optional[str] = None
    scales_output: Optional[str] = None

    ffmpeg_binary: str = "ffmpeg"
    max_input_bytes: int = 100 * 1024 * 1024

    config_path: Path = Path("apps") / "encoder" / "encoder.config.json"

    model_config = SettingsConfigDict(
        env_prefix="ENCODER_",
        env_file=env_file_path,
        extra="ignore",
        protected_namespaces=(),
    )

    @model_validator(mode="after")
    def _check_output_names(self) -> "Settings":
        # Either both names are pinned or neither is.
        if bool(self.tokens_output) != bool(self.scales_output):
            raise ValueError("tokens_output and scales_output must be set together")
        return self

    def resolve(self, path: Path) -> Path:
        """Return ``path`` anchored at the project root when it is relative."""
        return path if path.is_absolute() else PROJECT_ROOT / path

    @property
    def output_names(self) -> Optional[tuple[str, str]]:
        if self.tokens_output and self.scales_output:
            return (self.tokens_output, self.scales_output)
        return None
