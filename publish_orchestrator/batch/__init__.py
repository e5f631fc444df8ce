"""Batch publishing module.

This module provides task tracking, concurrent orchestration across
targets, verdict aggregation and job file parsing.
"""

from publish_orchestrator.batch.orchestrator import Orchestrator, TargetCallback
from publish_orchestrator.batch.parser import JobDefinition, JobParser
from publish_orchestrator.batch.registry import TaskRegistry
from publish_orchestrator.batch.service import PublishService
from publish_orchestrator.batch.verdict import aggregate, verdict_message

__all__ = [
    # Registry
    "TaskRegistry",
    # Orchestration
    "Orchestrator",
    "TargetCallback",
    "aggregate",
    "verdict_message",
    # Service
    "PublishService",
    # Parser
    "JobParser",
    "JobDefinition",
]
