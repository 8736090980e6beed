"""AgriTrace core: integrity primitives, the Local Ledger, collaborators and the orchestrator."""
