"""
Independent coding passes.

A pass is one "expert" reading of a document. Experts are plain persona
data; the component that turns a persona into annotations (usually a call
to an external text-generation service) implements PassProducer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from ..matching.matcher import PatternMatcher
from ..models import Category, Document
from .resolver import CodingPass


@dataclass(frozen=True)
class Persona:
    """Configuration of one independent coder."""
    id: str
    name: str
    instructions: Dict[str, str] = field(default_factory=dict)
    temperature: float = 0.3
    focus: Optional[str] = None

    def instructions_for(self, language: str = "en") -> str:
        """Instructions in the requested language, English as fallback."""
        return self.instructions.get(language) or self.instructions.get("en", "")


class PassProducer(ABC):
    """Produces one independent coding pass for a persona."""

    @abstractmethod
    def produce(self, document: Document, persona: Persona,
                categories: Sequence[Category]) -> CodingPass:
        """Code the document from the persona's perspective."""


class MatcherPassProducer(PassProducer):
    """Runs the pattern matcher as a pass; the persona only labels the result."""

    def __init__(self, matcher: Optional[PatternMatcher] = None):
        self.matcher = matcher or PatternMatcher()

    def produce(self, document: Document, persona: Persona,
                categories: Sequence[Category]) -> CodingPass:
        result = self.matcher.code(document, categories)
        annotations = [replace(a, coded_by=persona.id) for a in result.annotations]
        return CodingPass(pass_id=persona.id, annotations=annotations,
                          categories=list(result.categories))


THREE_EXPERT_PERSONAS: List[Persona] = [
    Persona(
        id="expert-1",
        name="Qualitative Researcher",
        instructions={
            "en": ("You are Expert 1, an experienced qualitative researcher coding inductively. "
                   "Identify themes that emerge directly from the text and stay open to "
                   "unexpected patterns. Justify each code briefly."),
            "de": ("Du bist Experte 1, ein erfahrener qualitativer Forscher mit induktiver Kodierung. "
                   "Identifiziere Themen, die direkt aus dem Text entstehen, und bleibe offen für "
                   "unerwartete Muster. Begründe jeden Code kurz."),
        },
        temperature=0.3,
    ),
    Persona(
        id="expert-2",
        name="Thematic Analyst",
        instructions={
            "en": ("You are Expert 2, a thematic analyst coding deductively. Look for known "
                   "concepts and theoretical constructs, structural patterns and relations "
                   "between categories."),
            "de": ("Du bist Experte 2, ein thematischer Analyst mit deduktiver Kodierung. Suche nach "
                   "bekannten Konzepten und theoretischen Konstrukten, strukturellen Mustern und "
                   "Beziehungen zwischen Kategorien."),
        },
        temperature=0.4,
    ),
    Persona(
        id="expert-3",
        name="Content Specialist",
        instructions={
            "en": ("You are Expert 3, a content analyst attending to manifest and latent meaning. "
                   "Analyze explicit statements and implicit meanings, considering context, "
                   "language and emotion."),
            "de": ("Du bist Experte 3, ein Inhaltsanalytiker für manifeste und latente Bedeutungen. "
                   "Analysiere explizite Aussagen und implizite Bedeutungen unter Berücksichtigung "
                   "von Kontext, Sprache und Emotionen."),
        },
        temperature=0.5,
    ),
]


_DOMAIN_INSTRUCTIONS = {
    "interview": {
        "en": "You are an experienced interview researcher. Look for deeper meanings, emotions and implicit assumptions in the statements.",
        "de": "Du bist ein erfahrener Interviewforscher. Suche in den Aussagen nach tieferen Bedeutungen, Emotionen und impliziten Annahmen.",
    },
    "focus-group": {
        "en": "You are a focus group specialist. Attend to group dynamics, consensus, dissent and social influence.",
        "de": "Du bist ein Fokusgruppen-Spezialist. Achte auf Gruppendynamik, Konsens, Dissens und soziale Einflüsse.",
    },
    "field-notes": {
        "en": "You are an ethnographer. Read the observations for cultural patterns, practices and social structures.",
        "de": "Du bist ein Ethnograph. Lies die Beobachtungen auf kulturelle Muster, Praktiken und soziale Strukturen hin.",
    },
    "general": {
        "en": "You are a qualitative researcher. Analyze the text for themes, concepts and patterns of meaning.",
        "de": "Du bist ein qualitativer Forscher. Analysiere den Text auf Themen, Konzepte und Bedeutungsmuster.",
    },
}

_CONTENT_MARKERS = [
    ("interview", ("interview", "frage:", "antwort:")),
    ("focus-group", ("fokusgruppe", "focus group", "diskussion", "teilnehmer")),
    ("field-notes", ("beobachtung", "feldnotiz", "field note")),
]


def detect_content_type(content: str) -> str:
    """Classify material as interview, focus-group, field-notes or general."""
    lowered = (content or "").lower()
    for content_type, markers in _CONTENT_MARKERS:
        if any(marker in lowered for marker in markers):
            return content_type
    return "general"


def dynamic_personas(document: Document) -> List[Persona]:
    """Persona set whose domain expert adapts to the detected content type."""
    content_type = detect_content_type(document.content)
    return [
        Persona(
            id="domain-expert",
            name="Domain Expert",
            instructions=dict(_DOMAIN_INSTRUCTIONS[content_type]),
            focus="thematic-depth",
        ),
        Persona(
            id="methodology-expert",
            name="Methodology Expert",
            instructions={
                "en": "You are a methodology expert for qualitative research. Code consistently, keep code boundaries clear and work rigorously.",
                "de": "Du bist ein Methodenexperte für qualitative Forschung. Kodiere konsistent, grenze Codes klar ab und arbeite methodisch streng.",
            },
            focus="pattern-recognition",
        ),
        Persona(
            id="critical-analyst",
            name="Critical Analyst",
            instructions={
                "en": "You are a critical analyst. Question obvious readings and look for contradictions, exceptions and alternative interpretations.",
                "de": "Du bist ein kritischer Analyst. Hinterfrage naheliegende Lesarten und suche nach Widersprüchen, Ausnahmen und Alternativen.",
            },
            focus="edge-cases",
        ),
    ]
