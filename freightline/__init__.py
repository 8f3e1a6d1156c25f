"""Freightline: Freight identity, lifecycle and availability for GitOps promotion.

  - Deterministic, order-independent Freight IDs
  - Per-Stage lifecycle tracking with soak-time bookkeeping
  - Bounded Freight and verification history per Stage
  - Availability queries under approval, verification and soak policies
  - SQLite-backed store with optimistic concurrency
"""

__version__ = "0.1.0"
__description__ = "Freight identity, lifecycle and availability for GitOps promotion"

from freightline.core.orchestrator import Orchestrator
from freightline.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
