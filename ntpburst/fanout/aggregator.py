"""
Result aggregation for ntpburst.
"""

from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from .worker import WorkerOutcome

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_INCOMPLETE = "incomplete"


def aggregate(outcomes: Sequence[Optional[WorkerOutcome]]) -> List[Dict[str, Any]]:
    """Flatten worker outcomes into plain mappings, in worker order.

    Failures are kept as explicit entries. A missing outcome (the worker had
    not reported when the coordinator stopped waiting) becomes an
    ``incomplete`` entry.
    """
    entries = []
    for index, outcome in enumerate(outcomes):
        if outcome is None:
            entries.append({
                'worker': index,
                'status': STATUS_INCOMPLETE,
                'error': {
                    'kind': STATUS_INCOMPLETE,
                    'message': "worker did not report before the completion timeout",
                },
            })
        elif outcome.ok:
            entries.append({
                'worker': outcome.index,
                'status': STATUS_OK,
                'report': outcome.report.to_dict(),
            })
        else:
            entries.append({
                'worker': outcome.index,
                'status': STATUS_FAILED,
                'error': {'kind': outcome.error.kind, 'message': outcome.error.message},
            })
    return entries


def summarize(entries: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    """Count entries per status."""
    counts = Counter(entry['status'] for entry in entries)
    return {
        'total': len(entries),
        STATUS_OK: counts[STATUS_OK],
        STATUS_FAILED: counts[STATUS_FAILED],
        STATUS_INCOMPLETE: counts[STATUS_INCOMPLETE],
    }
