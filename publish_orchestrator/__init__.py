"""Publish Orchestrator - concurrent batch publishing to multiple targets.

Fans one piece of content out to several publishing targets under a global
concurrency limit and a batch deadline, tracks per-target status and
aggregates the outcomes into a single verdict.
"""

__version__ = "0.1.0"
__author__ = "Publish Orchestrator Team"
