"""Temporal Workflows - Re-exports for worker registration."""

from src.app.temporal.workflows.cascade_sweep import CascadeSweepWorkflow

__all__ = [
    "CascadeSweepWorkflow",
]
