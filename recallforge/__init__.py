"""
recallforge - memory scheduling and session triage for spaced repetition.

Subpackages:
- core: domain models, FSRS-5 scheduler, ingestion
- study: rating, review commits, session planning, forecast
- adaptive: concept aggregation, page lifecycle, missions
- cli: Typer command line interface
"""

__version__ = "0.1.0"
