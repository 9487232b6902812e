"""Streamlit frontend for the buddy allocation prediction service."""

from __future__ import annotations

import json
from typing import Any, Optional

import pandas as pd
import streamlit as st

from buddy_client.config import ClientSettings, get_client_settings
from buddy_client.connectors.prediction_connector import SubmissionInProgressError
from buddy_client.domain.allocation import BatchAllocationTable
from buddy_client.domain.datasets import DAY_COLUMN, ENTRIES_COLUMN, RawUpload
from buddy_client.logging_utils import configure_logging
from buddy_client.schemas.prediction import BatchedResponse, PerDatasetResponse
from buddy_client.services.projection import (
    dataset_details,
    flatten_batches,
    group_summaries,
    response_overview,
)
from buddy_client.services.submission_service import (
    SubmissionPhase,
    SubmissionService,
    SubmissionState,
    build_submission_service,
)

st.set_page_config(page_title="Buddy Allocation Predictor", page_icon="🧮", layout="wide")


@st.cache_resource(show_spinner=False)
def _load_settings() -> ClientSettings:
    """Resolve settings and logging once per server process."""
    configure_logging()
    return get_client_settings()


def _get_service(settings: ClientSettings) -> SubmissionService:
    """One service per browser session so each session has its own in-flight slot."""
    if st.session_state.service is None:
        st.session_state.service = build_submission_service(settings)
    return st.session_state.service


_STATE_DEFAULTS: dict = {
    "service": None,
    "submission": None,
    "running": False,
    "notice": None,
}

for _key, _val in _STATE_DEFAULTS.items():
    if _key not in st.session_state:
        st.session_state[_key] = _val


def _request_submission() -> None:
    st.session_state.running = True
    st.session_state.submission = None
    st.session_state.notice = None


def _fmt(value: Optional[float], digits: int = 2, suffix: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{value:.{digits}f}{suffix}"


# ── Helper renderers ───────────────────────────────────────────────────────
def _render_allocation_tables(tables: tuple[BatchAllocationTable, ...], *, show_batch_titles: bool) -> None:
    if not tables:
        st.info("No allocation performance data available")
        return

    st.subheader("Memory Allocation Performance")
    for tagged in tables:
        if show_batch_titles:
            st.markdown(f"**{tagged.batch_name} - Allocation Results**")
            st.caption(f"Buddy system allocation for batch {tagged.batch_number}")
        st.dataframe(tagged.table.to_dataframe(), use_container_width=True, hide_index=True)


def _render_model_details(response: PerDatasetResponse | BatchedResponse, *, digits: int) -> None:
    for detail in dataset_details(response):
        title = detail.dataset.name
        if detail.dataset.entry_size:
            title += f" ({detail.dataset.entry_size} KB per entry)"
        st.markdown(f"**{title}**")
        for model in detail.models:
            predictions = ", ".join(f"{value:.{digits}f}" for value in model.predictions)
            st.markdown(f"- {model.model_name}: MSE {_fmt(model.mse, 4)}")
            if predictions:
                st.caption(f"Predictions: {predictions}")
        st.divider()


def _render_per_dataset(state: SubmissionState, response: PerDatasetResponse) -> None:
    tab_predictions, tab_performance, tab_details = st.tabs(
        ["Prediction Results", "Allocation Performance", "Detailed Results"]
    )

    with tab_predictions:
        st.subheader("Prediction Results")
        for group in group_summaries(response):
            cols = st.columns(3)
            for idx, dataset in enumerate(group.datasets):
                with cols[idx % 3]:
                    st.metric(dataset.name, _fmt(dataset.xgb_average))
                    st.caption(f"{_fmt(dataset.percentage)}% of total allocation")
                    st.caption(f"MSE: {_fmt(dataset.xgb_mse, 4)}")
                    if dataset.entry_size:
                        st.caption(f"Entry Size: {dataset.entry_size} KB")
            if group.has_percentages and not group.is_balanced:
                st.warning(f"Allocation percentages sum to {group.percentage_total:.2f}%, not 100%.")

    with tab_performance:
        _render_allocation_tables(state.allocation_tables, show_batch_titles=False)

    with tab_details:
        st.subheader("Detailed Results")
        with st.expander("Detailed Model Predictions"):
            _render_model_details(response, digits=2)
        with st.expander("Raw API Response"):
            st.json(state.raw_payload)


def _render_batched(state: SubmissionState, response: BatchedResponse) -> None:
    tab_overview, tab_batches, tab_performance, tab_raw = st.tabs(
        ["Overview", "Batch Details", "Allocation Performance", "Raw Results"]
    )

    with tab_overview:
        st.subheader("Batch Processing Overview")
        overview = response_overview(response)
        cols = st.columns(4)
        cols[0].metric("Original Datasets", overview.dataset_count)
        cols[1].metric("Batches Created", overview.batch_count)
        cols[2].metric("Total Dataset Results", overview.result_count)
        cols[3].metric("Buddy Allocations", overview.allocation_output_count)

        st.markdown("**Batch Summary**")
        summary_df = pd.DataFrame(
            [
                {
                    "Batch": batch.batch_name,
                    "Datasets": batch.datasets_in_batch,
                    "Total entries": batch.total_row_count,
                    "ML results": batch.result_count,
                    "Buddy allocation": "Available" if batch.has_allocation_output else "Not available",
                }
                for batch in flatten_batches(response)
            ]
        )
        st.dataframe(summary_df, use_container_width=True, hide_index=True)

    with tab_batches:
        st.caption("Detailed results for each batch, showing individual dataset processing within each batch")
        for group in group_summaries(response):
            st.markdown(f"#### {group.identifier}")
            st.caption(f"{group.element_count} datasets • {group.total_row_count} total entries")
            group_df = pd.DataFrame(
                [
                    {
                        "Dataset": dataset.name,
                        "XGB Average": _fmt(dataset.xgb_average),
                        "Entry Size (KB)": dataset.entry_size,
                        "Row Count": dataset.row_count,
                        "Percentage": _fmt(dataset.percentage, suffix="%"),
                        "Weighted Value": _fmt(dataset.weighted_value),
                    }
                    for dataset in group.datasets
                ]
            )
            st.dataframe(group_df, use_container_width=True, hide_index=True)
            if not group.has_percentages:
                st.caption("No allocation percentages reported for this batch")
            elif group.is_balanced:
                st.caption(f"Percentages total {group.percentage_total:.2f}% (balanced)")
            else:
                st.warning(f"Percentages total {group.percentage_total:.2f}%, not 100%.")

    with tab_performance:
        _render_allocation_tables(state.allocation_tables, show_batch_titles=True)

    with tab_raw:
        with st.expander("Batch Processing Details"):
            _render_model_details(response, digits=1)
        with st.expander("Buddy Allocation Results"):
            for output in response.all_buddy_outputs:
                st.markdown(f"**{output.batch_name}** (Batch Number: {output.batch_number})")
                st.caption("Percentages: " + ", ".join(f"{pct:.2f}%" for pct in output.percentages))
                if output.buddy_output:
                    st.code(output.buddy_output, language=None)
        with st.expander("Raw API Response"):
            st.json(state.raw_payload)


# ── Form ───────────────────────────────────────────────────────────────────
settings = _load_settings()
service = _get_service(settings)

st.title("ML Dynamic Prediction Based Buddy System")
st.caption("Upload CSV files with resource usage data to predict optimal memory allocation")

st.subheader("Upload Data")
num_files = int(
    st.number_input(
        "How many CSV files would you like to upload?",
        min_value=1,
        max_value=service.max_files,
        value=1,
        step=1,
        disabled=st.session_state.running,
    )
)
st.caption(f"Each CSV must contain '{DAY_COLUMN}' and '{ENTRIES_COLUMN}' columns (maximum {service.max_files} files)")

uploaded_files: list[Any] = []
entry_sizes: list[int | None] = []
for index in range(num_files):
    file_col, size_col = st.columns([4, 1])
    with file_col:
        uploaded_files.append(
            st.file_uploader(f"Dataset {index + 1} *", type=["csv"], key=f"file-{index}")
        )
    with size_col:
        if service.collect_entry_size:
            entry_sizes.append(
                int(st.number_input("Entry Size (KB)", min_value=1, value=1, step=1, key=f"size-{index}"))
            )
        else:
            entry_sizes.append(None)

st.button(
    "Processing..." if st.session_state.running else "Process Data",
    type="primary",
    use_container_width=True,
    disabled=st.session_state.running,
    on_click=_request_submission,
)


# ── Run submission ─────────────────────────────────────────────────────────
if st.session_state.running:
    uploads = [
        RawUpload(name=uploaded.name, content=uploaded.getvalue()) if uploaded is not None else None
        for uploaded in uploaded_files
    ]
    with st.status("Processing your data...", expanded=True) as status:
        st.caption("This can take several minutes for large inputs.")

        def _show_phase(state: SubmissionState) -> None:
            if state.phase is SubmissionPhase.VALIDATING:
                status.update(label="Validating CSV files...")
            elif state.phase is SubmissionPhase.SENDING:
                status.update(label=f"Sending {len(state.dataset_names)} dataset(s) to the prediction service...")
            elif state.phase is SubmissionPhase.SUCCEEDED:
                status.update(label="Prediction complete", state="complete", expanded=False)
            else:
                status.update(label="Processing stopped", state="error", expanded=False)

        try:
            st.session_state.submission = service.run(
                uploads,
                entry_sizes=entry_sizes,
                on_transition=_show_phase,
            )
        except SubmissionInProgressError as exc:
            st.session_state.notice = str(exc)
        finally:
            st.session_state.running = False
    st.rerun()


# ── Results ────────────────────────────────────────────────────────────────
if st.session_state.notice:
    st.warning(st.session_state.notice)

submission: Optional[SubmissionState] = st.session_state.submission
if submission is not None:
    if submission.phase in {SubmissionPhase.REJECTED, SubmissionPhase.FAILED}:
        st.error(submission.reason or "An unknown error occurred")
    elif submission.phase is SubmissionPhase.SUCCEEDED and submission.response is not None:
        response = submission.response
        if isinstance(response, BatchedResponse):
            _render_batched(submission, response)
        else:
            _render_per_dataset(submission, response)
        st.download_button(
            label="Download JSON",
            data=json.dumps(submission.raw_payload, indent=2).encode("utf-8"),
            file_name="prediction_response.json",
            mime="application/json",
        )
