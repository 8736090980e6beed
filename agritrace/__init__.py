"""AgriTrace: hash-chained supply-chain traceability from farm to retail SKU.

  - Local Ledger: append-only, version-chained entries per batch, persisted
    write-through as one JSON snapshot
  - Ledger Client: single-writer / multi-reader access for concurrent runs
  - Workflow Orchestrator: Registration -> Purchase -> Storage -> Transport
    -> Processing -> Packaging -> [Scoring], with evidence in a
    content-addressed store and receipts from an authoritative ledger
  - Commit-reveal publication of quality scores
"""

__version__ = "0.1.0"
__description__ = "Hash-chained supply-chain traceability with commit-reveal scoring"

from agritrace.core.ledger_client import LedgerClient
from agritrace.core.orchestrator import SupplyChainOrchestrator

__all__ = ["LedgerClient", "SupplyChainOrchestrator", "__version__"]
