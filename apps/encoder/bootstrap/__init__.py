"""
Provisioning helpers run before the pipeline.
- Make sure the model file is in place and write/refresh encoder.config.json.
"""

from . import probe, resolve, install, manager

__all__ = ["probe", "resolve", "install", "manager"]
