"""Rubric-based compliance scoring of fireground radio transcripts.

Packages:
- ``rtass.rubrics``: rubric models, validation and the file catalog
- ``rtass.scoring``: judge orchestration, aggregation and scorecards
- ``rtass.judge``: judge providers
- ``rtass.evidence``: evidence-to-segment mapping
- ``rtass.api``: FastAPI application
"""

__version__ = "0.1.0"
