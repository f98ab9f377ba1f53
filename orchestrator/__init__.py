"""
Orchestrator Package - Entry points for the two pipelines.

============================================================
PACKAGE OVERVIEW
============================================================
Wires configuration, logging and resources around the harvest pipeline
(collection_harvest) and the normalization pass (corpus_normalizer).
Holds no business logic of its own.

============================================================
QUICK START
============================================================
Command line usage::

    # Harvest a collection into .metadata/<slug>/
    python app.py harvest my-collection

    # Renumber it with mint dates and Type traits
    python app.py normalize .metadata/my-collection out \\
        --inject-mint-date --classify-names

Programmatic usage::

    import asyncio
    from collection_harvest import HarvestConfig
    from orchestrator import run_harvest

    asyncio.run(run_harvest(HarvestConfig.from_env(), "my-collection"))

============================================================
"""

from orchestrator.core import run_harvest, run_normalize, setup_logging
from orchestrator.cli import (
    async_main,
    build_harvest_config,
    build_normalize_options,
    create_parser,
    main,
    validate_args,
)


__version__ = "1.0.0"

__all__ = [
    # Core
    "run_harvest",
    "run_normalize",
    "setup_logging",

    # CLI
    "create_parser",
    "validate_args",
    "build_harvest_config",
    "build_normalize_options",
    "main",
    "async_main",
]
