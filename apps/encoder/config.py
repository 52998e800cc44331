"""
Application configuration utilities.

This module defines a small helper class that is responsible for
loading and exposing configuration values needed by the encoding
pipeline. Configuration is primarily read from the JSON file generated
during the bootstrap phase (see `bootstrap/manager.py`), while
environment driven settings (service address, model location) come
from :class:`apps.encoder.settings.Settings`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .settings import Settings


@dataclass
class Config:
    """Holds configuration loaded from the bootstrap JSON.

    Attributes
    ----------
    config_path: Path
        Location of the encoder.config.json file. This file records the
        hardware probe result and the runtime selection produced at
        bootstrap time.
    payload: Dict[str, Any]
        Raw JSON data loaded from the config file. This includes the
        hardware description (``payload['hardware']``) and the selected
        runtime (``payload['selected']``).
    settings: Settings
        Environment settings the config was loaded with.
    """

    config_path: Path
    payload: Dict[str, Any]
    settings: Settings = field(default_factory=Settings)

    @classmethod
    def load(cls, settings: Optional[Settings] = None, *, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from the JSON file and return a Config instance.

        Parameters
        ----------
        settings : Optional[Settings]
            Environment settings. Read from the environment and ``.env``
            when omitted.
        config_path : Optional[Path]
            Explicit path to a config JSON file. If omitted
            ``settings.config_path`` is used.
        """
        settings = settings or Settings()
        cfg = config_path or settings.resolve(settings.config_path)
        if not cfg.exists():
            raise FileNotFoundError(
                f"Configuration file '{cfg}' not found. Did you run the bootstrap/manager?"
            )
        payload = json.loads(cfg.read_text(encoding="utf-8"))
        return cls(config_path=cfg, payload=payload, settings=settings)

    # Convenience properties
    @property
    def selected(self) -> Dict[str, Any]:
        """Return the runtime selection dictionary from the payload."""
        return self.payload.get("selected", {})

    @property
    def hardware(self) -> Dict[str, Any]:
        """Return the hardware description dictionary from the payload."""
        return self.payload.get("hardware", {})

    @property
    def model_path(self) -> Path:
        selected = self.selected.get("model_path")
        return Path(selected) if selected else self.settings.resolve(self.settings.model_path)

    @property
    def providers(self) -> List[str]:
        return list(self.selected.get("providers") or ["CPUExecutionProvider"])

    @property
    def intra_op_threads(self) -> Optional[int]:
        value = self.selected.get("intra_op_threads")
        return int(value) if value else None
