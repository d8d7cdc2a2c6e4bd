"""Core orchestration: registry, trigger, job machine, ledger, orchestrator."""
