"""
Common utilities for backend scripts.

Puts the backend root on sys.path so scripts can be run directly
(python scripts/run_archive_sweep.py) as well as as modules
(python -m scripts.run_archive_sweep), and wraps the Cosmos client
lifecycle every script needs.

Usage:
    import scripts._common  # noqa: F401
"""

import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

BACKEND_ROOT = Path(__file__).parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


@asynccontextmanager
async def cosmos_session() -> AsyncIterator[None]:
    """Open the Cosmos client for the duration of a script."""
    from db import close_cosmos, init_cosmos

    await init_cosmos()
    try:
        yield
    finally:
        await close_cosmos()
