"""Stage modules for the encoding pipeline.

This package exposes all concrete stage classes so that they can be
easily imported elsewhere without referencing individual files.
"""

from .normalize import NormalizeStage
from .tensor import PrepareStage
from .infer import InferStage
from .serialize import SerializeStage
from .submit import SubmitStage

__all__ = [
    "NormalizeStage",
    "PrepareStage",
    "InferStage",
    "SerializeStage",
    "SubmitStage",
    "default_stages",
]


def default_stages() -> list:
    """Return fresh instances of the standard stage sequence."""
    return [
        NormalizeStage(),
        PrepareStage(),
        InferStage(),
        SerializeStage(),
        SubmitStage(),
    ]
