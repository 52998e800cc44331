"""
Model installation helpers.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from huggingface_hub import hf_hub_download

from ..errors import ModelLoadError
from ..settings import PROJECT_ROOT, Settings

logger = logging.getLogger(__name__)


# ------------------------------
# .env loading (HF_TOKEN from the project root .env)
# ------------------------------
def _load_hf_token_from_dotenv() -> Optional[str]:
    """
    Load the project root .env with python-dotenv and return
    HF_TOKEN or HUGGINGFACE_TOKEN.
    """
    root_env_path = PROJECT_ROOT / ".env"
    if root_env_path.exists():
        load_dotenv(dotenv_path=root_env_path)
    else:
        load_dotenv()

    token = os.getenv("HF_TOKEN") or os.getenv("HUGGINGFACE_TOKEN")
    return token if token not in ("", "None", "null") else None


# ------------------------------
# EnCodec ONNX model
# ------------------------------
def download_model(
    repo_id: str,
    filename: str,
    *,
    target_dir: Path,
    revision: Optional[str] = None,
    retries: int = 2,
    backoff_sec: float = 2.0,
) -> Path:
    """Fetch ``filename`` from a Hugging Face Hub repo into ``target_dir``."""
    token = _load_hf_token_from_dotenv()

    last_err = None
    for attempt in range(1, retries + 1):
        try:
            logger.info("[install/model] download: %s/%s (rev=%s)", repo_id, filename, revision or "latest")
            path = hf_hub_download(
                repo_id=repo_id,
                filename=filename,
                revision=revision,
                local_dir=str(target_dir),
                token=token,
            )
            logger.info("[install/model] ready: %s", path)
            return Path(path)
        except Exception as e:
            last_err = e
            logger.warning("[install/model] Error(%d/%d): %s", attempt, retries, e)
            if attempt < retries:
                sleep_for = backoff_sec * (2 ** (attempt - 1))
                logger.info("[install/model] Retry in %.1fs...", sleep_for)
                time.sleep(sleep_for)

    raise ModelLoadError(f"[install/model] Failed to download '{repo_id}/{filename}'. last_error={last_err}")


def ensure_model(settings: Settings) -> Path:
    """
    Return the local model path, downloading it first when it is missing
    and a Hub repository is configured.
    """
    model_path = settings.resolve(settings.model_path)
    if model_path.is_file():
        logger.info("[install/model] found: %s", model_path)
        return model_path

    if not settings.model_repo_id:
        raise ModelLoadError(
            f"model file '{model_path}' not found and ENCODER_MODEL_REPO_ID is not set"
        )

    model_path.parent.mkdir(parents=True, exist_ok=True)
    downloaded = download_model(
        settings.model_repo_id,
        settings.model_filename,
        target_dir=model_path.parent,
        revision=settings.model_revision,
    )
    return downloaded
