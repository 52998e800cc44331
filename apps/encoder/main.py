"""
Entry point for the encoding pipeline.

This script runs the bootstrap (ensuring the model is installed and the
configuration is written), loads the configuration, prepares resources,
initialises the pipeline stages and executes them on one audio file.

Usage
-----
Run this module as a script with the path to an input audio file:

.. code-block:: bash

   python -m apps.encoder.main /path/to/audio.mp3

On success the resource locator returned by the remote service and the
URL it can be fetched from are printed to stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from .bootstrap.manager import ensure_models_ready
from .config import Config
from .errors import PipelineError
from .pipeline.orchestrator import PipelineOrchestrator, RunOutcome
from .pipeline.stages import default_stages
from .resources import Resources
from .settings import Settings
from .types import AudioAsset


async def run_encode_pipeline(
    file_path: str, settings: Optional[Settings] = None
) -> Tuple[RunOutcome, Resources]:
    """Bootstrap, then encode ``file_path`` and submit it.

    Returns the run outcome together with the resources the run used, so
    the caller can resolve the returned locator against the same service.
    """
    settings = settings or Settings()
    input_path = Path(file_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    config_path = settings.resolve(settings.config_path)
    await asyncio.to_thread(ensure_models_ready, config_path, settings)
    config = Config.load(settings, config_path=config_path)

    resources = Resources(config)
    orchestrator = PipelineOrchestrator(default_stages(), config, resources)
    asset = AudioAsset.from_path(input_path, max_bytes=settings.max_input_bytes)
    return await orchestrator.run(asset), resources


def encoder_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Encode an audio file with EnCodec and send it to the decode service")
    parser.add_argument("input_file", type=str, help="Path to an input audio file")
    parser.add_argument("--service-url", default=None, help="Override ENCODER_SERVICE_URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings()
    if args.service_url:
        settings = settings.model_copy(update={"service_url": args.service_url})

    try:
        outcome, resources = asyncio.run(run_encode_pipeline(args.input_file, settings))
    except (FileNotFoundError, PipelineError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not outcome.succeeded:
        print(f"Error: {outcome.message}", file=sys.stderr)
        return 1

    print("=== Encoded ===")
    print(f"locator: {outcome.locator}")
    print(f"url:     {resources.submitter.resource_url(outcome.locator)}")
    return 0


if __name__ == "__main__":
    sys.exit(encoder_main(sys.argv[1:]))
