"""
Automated coding service.

Dispatches a document to one of the automated coding methods: persona-based
methods run one independent pass per persona and keep only consensus claims,
the calibrated-pattern method codes directly against existing categories.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..config import EngineConfig
from ..matching.matcher import PatternMatcher, as_document
from ..models import Category, CodingResult, Document, InvalidConfigurationError, ProcessingStage
from .passes import THREE_EXPERT_PERSONAS, PassProducer, Persona, dynamic_personas
from .resolver import ConsensusResolver
from .similarity import taxonomy_key

logger = logging.getLogger(__name__)


class CodingMethod(Enum):
    """Automated coding methods."""
    THREE_EXPERT = "three-expert"
    DYNAMIC_PERSONAS = "dynamic-personas"
    CALIBRATED_PATTERN = "calibrated-pattern"


_DESCRIPTIONS = {
    "en": {
        CodingMethod.THREE_EXPERT: "Three experts code independently; only codes with consensus are kept.",
        CodingMethod.DYNAMIC_PERSONAS: "Personas adapted to the material code from different professional perspectives.",
        CodingMethod.CALIBRATED_PATTERN: "Pattern matching calibrated on existing codes, for consistent coding.",
    },
    "de": {
        CodingMethod.THREE_EXPERT: "Drei Experten kodieren unabhängig voneinander. Nur Codes mit Konsens werden übernommen.",
        CodingMethod.DYNAMIC_PERSONAS: "Dynamische Personas passen sich an den Text an und kodieren aus verschiedenen Fachperspektiven.",
        CodingMethod.CALIBRATED_PATTERN: "Mustererkennung mit Kalibrierung an bestehenden Codes für konsistente Kodierung.",
    },
}


@dataclass
class CodingOptions:
    """Per-call options for the coding service."""
    method: Union[CodingMethod, str] = CodingMethod.THREE_EXPERT
    existing_categories: List[Category] = field(default_factory=list)
    min_confidence: Optional[float] = None
    min_agreement_fraction: Optional[float] = None


class CodingService:
    """Entry point for automated coding of a document."""

    def __init__(self, producer: Optional[PassProducer] = None,
                 config: Optional[EngineConfig] = None,
                 matcher: Optional[PatternMatcher] = None):
        """
        Initialize the coding service.

        Args:
            producer: Capability producing persona passes; required for the
                persona-based methods
            config: Engine configuration
            matcher: Pattern matcher for the calibrated-pattern method
        """
        self.config = config or EngineConfig()
        self.producer = producer
        self.matcher = matcher or PatternMatcher(self.config.matcher)
        self.resolver = ConsensusResolver(self.config.consensus)

    def available_methods(self) -> List[CodingMethod]:
        return list(CodingMethod)

    def method_description(self, method: Union[CodingMethod, str], language: Optional[str] = None) -> str:
        descriptions = _DESCRIPTIONS.get(language or self.config.consensus.language, _DESCRIPTIONS["en"])
        return descriptions[self._method(method)]

    def personas_for(self, method: Union[CodingMethod, str], document: Document) -> List[Persona]:
        method = self._method(method)
        if method is CodingMethod.THREE_EXPERT:
            return list(THREE_EXPERT_PERSONAS)
        if method is CodingMethod.DYNAMIC_PERSONAS:
            return dynamic_personas(document)
        return []

    def code(self, document: Union[Document, Dict[str, Any]],
             options: Optional[CodingOptions] = None) -> CodingResult:
        """
        Code a document with the requested method.

        Args:
            document: Document or ``{"id", "content"}`` dict
            options: Coding options; three-expert when omitted

        Returns:
            CodingResult with annotations, categories and consensus rate
        """
        options = options or CodingOptions()
        method = self._method(options.method)
        document = as_document(document)
        started = time.perf_counter()

        if method is CodingMethod.CALIBRATED_PATTERN:
            result = self.matcher.code(document, options.existing_categories, options.min_confidence)
        else:
            result = self._code_with_personas(document, method, options)

        result.duration = time.perf_counter() - started
        logger.info(f"Coded document {document.id} with {method.value}: "
                    f"{len(result.annotations)} annotations in {result.duration:.3f}s")
        return result

    def _code_with_personas(self, document: Document, method: CodingMethod,
                            options: CodingOptions) -> CodingResult:
        if self.producer is None:
            raise InvalidConfigurationError(
                ProcessingStage.CONSENSUS.value,
                f"Method {method.value} needs a pass producer",
                method=method.value
            )

        passes = []
        for persona in self.personas_for(method, document):
            logger.debug(f"Running pass {persona.id} ({persona.name}) on document {document.id}")
            passes.append(self.producer.produce(document, persona, options.existing_categories))

        consensus = self.resolver.resolve(passes, options.min_agreement_fraction)
        result = consensus.to_coding_result(method.value)
        result.categories = self._merge_with_existing(options.existing_categories, consensus.categories)
        return result

    def _merge_with_existing(self, existing: List[Category], proposed: List[Category]) -> List[Category]:
        merged = {}
        for category in list(existing) + list(proposed):
            merged.setdefault(taxonomy_key(category.name), category)
        return list(merged.values())

    def _method(self, method: Union[CodingMethod, str]) -> CodingMethod:
        if isinstance(method, CodingMethod):
            return method
        try:
            return CodingMethod(method)
        except ValueError:
            raise InvalidConfigurationError(
                ProcessingStage.CONSENSUS.value,
                f"Unknown coding method: {method}",
                method=str(method),
                supported=[m.value for m in CodingMethod]
            )
