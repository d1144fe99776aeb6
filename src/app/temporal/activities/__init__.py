"""
Temporal Activities - Fine-grained, idempotent operations.

Activities should be:
1. Idempotent - Safe to retry
2. Fine-grained - Do one thing well
3. Side-effect aware - External calls go here, not in workflows
"""

from src.app.temporal.activities.archival import sweep_pending_cascades

__all__ = [
    "sweep_pending_cascades",
]
