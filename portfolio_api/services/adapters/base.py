from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests

from portfolio_api.core.errors import (
    BackendError,
    BackendTimeoutError,
    NetworkError,
    UnknownBackendError,
)
from portfolio_api.schemas.contact import Submission


@dataclass(frozen=True)
class AdapterReceipt:
    """What a backend hands back after accepting a submission."""

    id: str
    method: str
    message: str = "Form submitted successfully"
    mailto: Optional[str] = None


class SubmissionAdapter(ABC):
    """One-to-one mapping of a Submission onto a single backend call."""

    method: str = "abstract"

    @abstractmethod
    def submit(self, submission: Submission) -> AdapterReceipt:
        """Write the submission; raise a BackendError subclass on failure."""


def classify_transport_error(exc: Exception) -> Optional[BackendError]:
    """Map low-level transport failures onto the transient error types."""
    if isinstance(exc, (requests.Timeout, TimeoutError)):
        return BackendTimeoutError(f"Backend request timed out: {exc}")
    if isinstance(exc, (requests.ConnectionError, ConnectionError)):
        return NetworkError(f"Could not reach backend: {exc}")
    return None


def classify_unknown(exc: Exception) -> BackendError:
    return classify_transport_error(exc) or UnknownBackendError(
        str(exc) or type(exc).__name__
    )
