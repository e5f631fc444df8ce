"""Batch verdict aggregation."""

from collections.abc import Mapping

from publish_orchestrator.models import TargetStatus, Verdict

_VERDICT_MESSAGES = {
    Verdict.ALL_SUCCEEDED: "all targets published successfully",
    Verdict.PARTIAL: "some targets published successfully",
    Verdict.ALL_FAILED: "all targets failed",
}


def aggregate(status_by_target: Mapping[str, TargetStatus]) -> Verdict:
    """Compute the batch verdict from a status map.

    Works on partially complete maps too: PENDING and IN_PROGRESS count as
    not succeeded, so a provisional verdict is never ALL_SUCCEEDED while
    anything is outstanding. An empty map is ALL_FAILED.
    """
    succeeded = sum(1 for s in status_by_target.values() if s == TargetStatus.SUCCEEDED)

    if succeeded == 0:
        return Verdict.ALL_FAILED
    if succeeded == len(status_by_target):
        return Verdict.ALL_SUCCEEDED
    return Verdict.PARTIAL


def verdict_message(verdict: Verdict) -> str:
    return _VERDICT_MESSAGES[verdict]
