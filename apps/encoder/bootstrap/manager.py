"""
Model readiness manager

Overview:
1) If the config file (config_json) exists, parses and records the model
   the settings point at, return it (no rework).
2) Otherwise:
   - host detection:     probe.detect_hardware()
   - runtime selection:  resolve.pick_runtime(hw)
   - model install:      install.ensure_model(settings)
   - write the result:   config_json (JSON)
"""

from __future__ import annotations
from pathlib import Path
import json
from typing import Any, Dict, Optional

from .probe import detect_hardware
from .resolve import pick_runtime
from .install import ensure_model
from ..settings import Settings


def _is_current_model(model_path: Path, settings: Settings) -> bool:
    """True when model_path exists and is the model the settings point at."""
    if not model_path.is_file():
        return False
    configured = settings.resolve(settings.model_path)
    # A Hub download lands next to the configured path under the repo file name.
    candidates = {configured.resolve(), (configured.parent / settings.model_filename).resolve()}
    return model_path.resolve() in candidates


def ensure_models_ready(config_json: Path, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Make sure the model is present on first use and record the outcome in
    config_json. Idempotent: an existing, readable config_json whose model
    file still exists and matches settings.model_path is returned as is;
    a different configured model triggers a fresh bootstrap.
    """
    settings = settings or Settings()

    # 0) Existing config for the same model: return immediately
    if config_json.exists():
        try:
            payload = json.loads(config_json.read_text(encoding="utf-8"))
            model_path = payload.get("selected", {}).get("model_path")
            if model_path and _is_current_model(Path(model_path), settings):
                return payload
        except (OSError, ValueError):
            # Corrupt file: regenerate
            pass

    # 1) Host detection
    hw = detect_hardware()

    # 2) Runtime selection
    selected = pick_runtime(hw)

    # 3) Model file
    selected["model_path"] = str(ensure_model(settings))

    # 4) Build and write the payload
    payload = {
        "hardware": hw,
        "selected": selected,
    }

    config_json.parent.mkdir(parents=True, exist_ok=True)
    config_json.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    return payload


# Optional: standalone CLI run
if __name__ == "__main__":
    import sys

    # Default location: apps/encoder/encoder.config.json
    # A path may be passed: python -m apps.encoder.bootstrap.manager apps/encoder/encoder.config.json
    settings = Settings()
    cfg_path = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.resolve(settings.config_path)
    result = ensure_models_ready(cfg_path, settings)
    print("[bootstrap] completed")
    print(json.dumps(result, indent=2, ensure_ascii=False))
