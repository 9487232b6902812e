"""
Submit CSV datasets to the prediction service from the CLI.
"""

from __future__ import annotations

import argparse
import json
import signal
from pathlib import Path
from typing import Any

from buddy_client.connectors.prediction_connector import CancellationToken
from buddy_client.domain.datasets import RawUpload
from buddy_client.logging_utils import configure_logging
from buddy_client.services.projection import group_summaries
from buddy_client.services.submission_service import SubmissionPhase, SubmissionState, get_submission_service


def _read_upload(path: Path) -> RawUpload | None:
    if not path.is_file():
        return None
    return RawUpload(name=path.name, content=path.read_bytes())


def _summarize(state: SubmissionState) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "phase": state.phase.value,
        "reason": state.reason,
        "datasets": list(state.dataset_names),
    }
    if state.response is None:
        return payload

    payload["variant"] = state.response.variant.value
    payload["groups"] = [
        {
            "batch_number": group.batch_number,
            "identifier": group.identifier,
            "element_count": group.element_count,
            "percentage_total": None if group.percentage_total is None else round(group.percentage_total, 4),
            "balanced": group.is_balanced,
        }
        for group in group_summaries(state.response)
    ]
    payload["allocation_tables"] = [
        {
            "batch_number": tagged.batch_number,
            "batch_name": tagged.batch_name,
            "headers": list(tagged.table.headers),
            "rows": [list(row) for row in tagged.table.rows],
        }
        for tagged in state.allocation_tables
    ]
    return payload


def main() -> int:
    parser = argparse.ArgumentParser(description="Submit resource-usage CSV files for allocation prediction.")
    parser.add_argument("files", nargs="+", type=Path, help="CSV files, one per dataset slot.")
    parser.add_argument(
        "--entry-size",
        dest="entry_sizes",
        action="append",
        type=int,
        default=None,
        help="Entry size in KB for the dataset at the same position. Repeat once per file.",
    )
    args = parser.parse_args()

    configure_logging()
    service = get_submission_service()

    token = CancellationToken()
    signal.signal(signal.SIGINT, lambda _signum, _frame: token.cancel())

    state = service.run(
        [_read_upload(path) for path in args.files],
        entry_sizes=args.entry_sizes,
        cancel_token=token,
    )
    print(json.dumps(_summarize(state), indent=2))
    return 0 if state.phase is SubmissionPhase.SUCCEEDED else 1


if __name__ == "__main__":
    raise SystemExit(main())
