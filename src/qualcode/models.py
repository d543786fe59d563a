"""
Core data models for qualcode.

This module contains the data structures shared by the agreement metrics,
the pattern matcher and the consensus resolver: categories, annotations,
coding units, rater records, result types and the error taxonomy.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


NO_CODE = "__NO_CODE__"


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProcessingStage(Enum):
    """Engine stages an error can originate from."""
    AGREEMENT = "agreement"
    MATCHING = "matching"
    CONSENSUS = "consensus"
    CONFIG = "config"
    MODEL = "model"


@dataclass
class ProcessingError(Exception):
    """Represents an error raised by one of the engine stages."""
    stage: str
    error_type: str
    message: str
    severity: ErrorSeverity
    document_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.stage}] {self.error_type}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "stage": self.stage,
            "error_type": self.error_type,
            "message": self.message,
            "severity": self.severity.value,
            "document_id": self.document_id,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context
        }


class InsufficientRatersError(ProcessingError):
    """Fewer raters were supplied than an agreement computation needs."""

    def __init__(self, rater_count: int, required: int = 2):
        super().__init__(
            stage=ProcessingStage.AGREEMENT.value,
            error_type="InsufficientRaters",
            message=f"At least {required} raters are required, got {rater_count}",
            severity=ErrorSeverity.HIGH,
            context={"rater_count": rater_count, "required": required}
        )


class IncompatibleRaterCountError(ProcessingError):
    """A metric restricted to a fixed number of raters got a different count."""

    def __init__(self, metric: str, rater_count: int, expected: int = 2):
        super().__init__(
            stage=ProcessingStage.AGREEMENT.value,
            error_type="IncompatibleRaterCount",
            message=f"{metric} requires exactly {expected} raters, got {rater_count}",
            severity=ErrorSeverity.HIGH,
            context={"metric": metric, "rater_count": rater_count, "expected": expected}
        )


class UnsupportedMetricError(ProcessingError):
    """The requested agreement metric identifier is unknown."""

    def __init__(self, metric: Any, supported: Sequence[str] = ()):
        super().__init__(
            stage=ProcessingStage.AGREEMENT.value,
            error_type="UnsupportedMetric",
            message=f"Unknown agreement metric: {metric!r}",
            severity=ErrorSeverity.HIGH,
            context={"metric": str(metric), "supported": list(supported)}
        )


class NoPassesProvidedError(ProcessingError):
    """Consensus resolution was called without any coding pass."""

    def __init__(self):
        super().__init__(
            stage=ProcessingStage.CONSENSUS.value,
            error_type="NoPassesProvided",
            message="At least one coding pass is required to resolve consensus",
            severity=ErrorSeverity.HIGH
        )


class InvalidAnnotationError(ProcessingError):
    """An annotation violates the span or confidence invariants."""

    def __init__(self, message: str, document_id: Optional[str] = None, **context):
        super().__init__(
            stage=ProcessingStage.MODEL.value,
            error_type="InvalidAnnotation",
            message=message,
            severity=ErrorSeverity.MEDIUM,
            document_id=document_id,
            context=context
        )


class InvalidConfigurationError(ProcessingError):
    """An option passed to an engine operation is out of range."""

    def __init__(self, stage: str, message: str, **context):
        super().__init__(
            stage=stage,
            error_type="ConfigurationError",
            message=message,
            severity=ErrorSeverity.HIGH,
            context=context
        )


@dataclass
class Category:
    """A code in the coding scheme. Categories form a forest via parent_id."""
    id: str
    name: str
    description: Optional[str] = None
    color: str = "#808080"
    parent_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert category to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "parent_id": self.parent_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        """Create Category from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description"),
            color=data.get("color", "#808080"),
            parent_id=data.get("parent_id")
        )


@dataclass(frozen=True)
class CodingUnit:
    """Position-addressed key used to align annotations from different raters."""
    document_id: str
    start_offset: int
    end_offset: int

    @property
    def key(self) -> str:
        return f"{self.document_id}-{self.start_offset}-{self.end_offset}"

    def overlaps(self, other: 'CodingUnit') -> bool:
        """Half-open interval intersection within the same document."""
        return (self.document_id == other.document_id and
                self.start_offset < other.end_offset and
                self.end_offset > other.start_offset)


@dataclass
class Annotation:
    """A category applied to a half-open character span of a document."""
    document_id: str
    category_id: str
    start_offset: int
    end_offset: int
    text: str = ""
    category_name: str = ""
    coded_by: str = "unknown"
    confidence: Optional[float] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    memo: Optional[str] = None

    def __post_init__(self):
        if self.start_offset >= self.end_offset:
            raise InvalidAnnotationError(
                f"start_offset ({self.start_offset}) must be smaller than "
                f"end_offset ({self.end_offset})",
                document_id=self.document_id,
                start_offset=self.start_offset,
                end_offset=self.end_offset
            )
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise InvalidAnnotationError(
                f"confidence must lie in [0, 1], got {self.confidence}",
                document_id=self.document_id,
                confidence=self.confidence
            )
        if not self.category_name:
            self.category_name = self.category_id

    @property
    def category_key(self) -> str:
        """Identifier used when comparing ratings."""
        return self.category_id or self.category_name

    @property
    def unit(self) -> CodingUnit:
        return CodingUnit(self.document_id, self.start_offset, self.end_offset)

    def overlaps(self, other: 'Annotation') -> bool:
        return self.unit.overlaps(other.unit)

    def to_dict(self) -> Dict[str, Any]:
        """Convert annotation to dictionary for serialization."""
        return {
            "id": self.id,
            "document_id": self.document_id,
            "category_id": self.category_id,
            "category_name": self.category_name,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "text": self.text,
            "coded_by": self.coded_by,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
            "memo": self.memo
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Annotation':
        """Create Annotation from dictionary."""
        kwargs = {
            "document_id": data["document_id"],
            "category_id": data.get("category_id") or data.get("category_name", ""),
            "category_name": data.get("category_name", ""),
            "start_offset": int(data["start_offset"]),
            "end_offset": int(data["end_offset"]),
            "text": data.get("text", ""),
            "coded_by": data.get("coded_by", "unknown"),
            "confidence": data.get("confidence"),
            "memo": data.get("memo"),
        }
        if data.get("id"):
            kwargs["id"] = data["id"]
        if data.get("created_at"):
            kwargs["created_at"] = datetime.fromisoformat(data["created_at"])
        return cls(**kwargs)


@dataclass
class Document:
    """A source document to be coded."""
    id: str
    content: str
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "content": self.content}


@dataclass
class RaterRecord:
    """All annotations one rater produced for the material under comparison."""
    rater_id: str
    annotations: List[Annotation] = field(default_factory=list)
    rater_name: Optional[str] = None
    document_id: Optional[str] = None

    def __post_init__(self):
        if self.rater_name is None:
            self.rater_name = self.rater_id

    def rating_for(self, unit: CodingUnit) -> Optional[str]:
        """Category key of the first annotation on exactly this unit."""
        for annotation in self.annotations:
            if annotation.unit == unit:
                return annotation.category_key
        return None

    def ratings_by_unit(self) -> Dict[CodingUnit, str]:
        """Map every unit this rater annotated to its first category key."""
        ratings: Dict[CodingUnit, str] = {}
        for annotation in self.annotations:
            ratings.setdefault(annotation.unit, annotation.category_key)
        return ratings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rater_id": self.rater_id,
            "rater_name": self.rater_name,
            "document_id": self.document_id,
            "annotations": [a.to_dict() for a in self.annotations]
        }


def group_by_rater(annotations: Sequence[Annotation]) -> List[RaterRecord]:
    """
    Build rater records from a flat list of annotations.

    Annotations are grouped by ``coded_by`` in first-seen order. Rater ids of
    the form ``user-<n>`` get the display name ``Coder <n>``.

    Args:
        annotations: Annotations produced by any number of raters

    Returns:
        One RaterRecord per distinct ``coded_by`` value
    """
    records: Dict[str, RaterRecord] = {}
    for annotation in annotations:
        rater_id = annotation.coded_by
        if rater_id not in records:
            name = f"Coder {rater_id[len('user-'):]}" if rater_id.startswith("user-") else rater_id
            records[rater_id] = RaterRecord(rater_id=rater_id, rater_name=name)
        records[rater_id].annotations.append(annotation)

    document_ids = {a.document_id for a in annotations}
    if len(document_ids) == 1:
        only = document_ids.pop()
        for record in records.values():
            record.document_id = only
    return list(records.values())


@dataclass
class ConfidenceInterval:
    """Percentile bootstrap interval around an agreement value."""
    lower: float
    upper: float
    level: float
    samples: int

    def to_dict(self) -> Dict[str, Any]:
        return {"lower": self.lower, "upper": self.upper,
                "level": self.level, "samples": self.samples}


@dataclass
class AgreementDetails:
    """Diagnostic detail reported alongside an agreement value."""
    rater_count: int
    category_count: int
    unit_count: int
    observed_agreement: Optional[float] = None
    expected_agreement: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observed_agreement": self.observed_agreement,
            "expected_agreement": self.expected_agreement,
            "rater_count": self.rater_count,
            "category_count": self.category_count,
            "unit_count": self.unit_count
        }


@dataclass
class AgreementResult:
    """Outcome of an inter-rater reliability computation."""
    metric: str
    value: float
    interpretation: Any
    details: AgreementDetails
    extras: Dict[str, Any] = field(default_factory=dict)
    confidence_interval: Optional[ConfidenceInterval] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for display or export."""
        interpretation = getattr(self.interpretation, "value", self.interpretation)
        return {
            "metric": self.metric,
            "value": self.value,
            "interpretation": interpretation,
            "details": self.details.to_dict(),
            "extras": self.extras,
            "confidence_interval": (self.confidence_interval.to_dict()
                                    if self.confidence_interval else None)
        }


@dataclass
class CodingResult:
    """Annotations and categories produced by an automated coding method."""
    annotations: List[Annotation]
    categories: List[Category]
    method: str
    duration: float = 0.0
    consensus_rate: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "annotations": [a.to_dict() for a in self.annotations],
            "categories": [c.to_dict() for c in self.categories],
            "metadata": {
                "method": self.method,
                "duration": self.duration,
                "consensus_rate": self.consensus_rate
            },
            "extras": self.extras
        }
