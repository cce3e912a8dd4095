"""Domain models for the note session."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Document:
    """A note tab. Content is stored separately, under the document id."""

    id: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title}


class OperationKind(str, Enum):
    """Enrichment operations offered by the text-processing service."""

    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    PROOFREAD = "proofread"
    PARAPHRASE = "paraphrase"
    KEYWORDS = "keywords"


class PanelStatus(str, Enum):
    EMPTY = "empty"
    WORKING = "working"
    RESULT = "result"
    ERROR = "error"


class EnrichmentOutcome(str, Enum):
    """What a call to ``run_enrichment`` did."""

    SKIPPED = "skipped"
    CREDENTIAL_REQUIRED = "credential_required"
    EMPTY_SOURCE = "empty_source"
    CACHED = "cached"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CacheKey:
    """Fingerprint of an enrichment request.

    The source text enters only as a fixed-width digest.
    """

    operation: OperationKind
    document_id: str
    language: str | None
    content_digest: str


@dataclass(frozen=True)
class Job:
    """An enrichment job awaiting completion. Never persisted."""

    status_url: str
    operation: OperationKind
    document_id: str
    cache_key: CacheKey
    result_key: str
    retries_elapsed: int = 0


@dataclass(frozen=True)
class Panel:
    """Contents of the enrichment panel."""

    document_id: str | None = None
    operation: OperationKind | None = None
    status: PanelStatus = PanelStatus.EMPTY
    text: str = ""
