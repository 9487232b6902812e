"""
buddy_client/domain/outcomes.py

Classified results of one remote prediction call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Success:
    """
    Transport succeeded and the service answered with a 2xx status.
    """

    payload: Any
    status_code: int = 200

    @property
    def message(self) -> str:
        return "Prediction completed."


@dataclass(frozen=True)
class HttpError:
    """
    Transport succeeded but the service answered with a failure status.
    """

    status_code: int
    body_text: str

    @property
    def message(self) -> str:
        return f"API request failed with status {self.status_code}: {self.body_text}"


@dataclass(frozen=True)
class TransportError:
    """
    The call could not complete for a reason other than the deadline.
    """

    message: str


@dataclass(frozen=True)
class TimedOut:
    """
    The wall-clock deadline elapsed before a response arrived.
    """

    max_wait_seconds: float

    @property
    def message(self) -> str:
        minutes = self.max_wait_seconds / 60.0
        return (
            f"No response from the prediction service within {minutes:g} minute(s). "
            "Processing can take a long time for large inputs; try fewer or smaller files."
        )


Outcome = Union[Success, HttpError, TransportError, TimedOut]
