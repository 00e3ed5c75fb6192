"""Business logic layer for uploads app.

This package contains the ingestion pipelines:
- Local thumbnail pipeline and remote upload pipeline
- Pipeline state tracking and the orchestrator dispatching between them
- Persistence gateway for file records

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
