"""
Evaluator Scoring Engine.

Scores vendors against weighted requirements: versioned individual scores,
consensus per (vendor, requirement), five aggregation methods, ranking and
side-by-side comparison.
"""

__version__ = "1.0.0"
