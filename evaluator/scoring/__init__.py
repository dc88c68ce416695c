"""
scoring/ - Vendor Evaluation Scoring Engine

Modules:
    utils.py              - Decimal utilities (means, variance, normalisation)
    config_validator.py   - Configuration Validator (method, scale, weights)
    evidence_policy.py    - Evidence Policy (evidence for extreme scores)
    score_ledger.py       - Score Ledger (versioned individual entries)
    consensus.py          - Consensus Workflow (per-pair state machine)
    aggregation.py        - Aggregation Engine (five scoring methods)
    ranking.py            - Ranking & Comparison Builder
    reconciliation.py     - Score spread / variance for consensus planning
"""
