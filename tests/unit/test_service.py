"""
Unit tests for the automated coding service.

Tests method dispatch, persona passes and content type detection.
"""

import pytest
from pathlib import Path
from typing import Sequence

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from qualcode.consensus import (
    THREE_EXPERT_PERSONAS, CodingMethod, CodingOptions, CodingPass, CodingService,
    MatcherPassProducer, PassProducer, Persona, detect_content_type, dynamic_personas
)
from qualcode.models import Annotation, Category, Document, InvalidConfigurationError


CONTENT = ("I need motivation to learn new things. The weather was cold yesterday. "
           "Lunch tasted great today.")


class ScriptedProducer(PassProducer):
    """Returns prepared claims per persona and records the call order."""

    def __init__(self, claims, proposals=None):
        self.claims = claims
        self.proposals = proposals or {}
        self.calls = []

    def produce(self, document: Document, persona: Persona,
                categories: Sequence[Category]) -> CodingPass:
        self.calls.append(persona.id)
        annotations = [
            Annotation(document_id=document.id, category_id=name.lower(), category_name=name,
                       start_offset=start, end_offset=end, coded_by=persona.id)
            for name, start, end in self.claims.get(persona.id, [])
        ]
        return CodingPass(pass_id=persona.id, annotations=annotations,
                          categories=list(self.proposals.get(persona.id, [])))


@pytest.fixture
def document():
    return Document(id="doc-1", content=CONTENT)


@pytest.fixture
def producer():
    return ScriptedProducer(
        claims={
            "expert-1": [("Motivation", 0, 38), ("Weather", 39, 70)],
            "expert-2": [("Learning motivation", 0, 38)],
            "expert-3": [("Food", 71, 96)],
        },
        proposals={
            "expert-1": [Category(id="p1", name="Motivation")],
            "expert-3": [Category(id="p3", name="Food")],
        }
    )


class TestPersonas:
    """Test persona sets."""

    def test_three_experts(self):
        assert [p.id for p in THREE_EXPERT_PERSONAS] == ["expert-1", "expert-2", "expert-3"]
        assert [p.temperature for p in THREE_EXPERT_PERSONAS] == [0.3, 0.4, 0.5]

    def test_instructions_fall_back_to_english(self):
        persona = THREE_EXPERT_PERSONAS[0]

        assert persona.instructions_for("de").startswith("Du bist Experte 1")
        assert persona.instructions_for("fr") == persona.instructions_for("en")

    @pytest.mark.parametrize("content,expected", [
        ("Interview mit Frau K.\nFrage: Wie geht es?", "interview"),
        ("Transcript of the focus group session", "focus-group"),
        ("Feldnotiz vom Dienstag", "field-notes"),
        ("Some ordinary prose.", "general"),
        ("", "general"),
    ])
    def test_detect_content_type(self, content, expected):
        assert detect_content_type(content) == expected

    def test_dynamic_personas_adapt_to_content(self):
        interview = dynamic_personas(Document(id="d", content="Interview transcript"))
        general = dynamic_personas(Document(id="d", content="Plain text"))

        assert [p.id for p in interview] == ["domain-expert", "methodology-expert", "critical-analyst"]
        assert [p.focus for p in interview] == ["thematic-depth", "pattern-recognition", "edge-cases"]
        assert "interview" in interview[0].instructions_for("en")
        assert interview[0].instructions != general[0].instructions
        assert interview[1] == general[1]


class TestCodingService:
    """Test method dispatch."""

    def test_three_expert_consensus(self, document, producer):
        service = CodingService(producer=producer)

        result = service.code(document, CodingOptions(method="three-expert"))

        assert producer.calls == ["expert-1", "expert-2", "expert-3"]
        assert result.method == "three-expert"
        assert [a.category_name for a in result.annotations] == ["Motivation"]
        assert result.annotations[0].confidence == pytest.approx(2 / 3)
        assert result.consensus_rate == pytest.approx(1 / 3)
        assert result.extras["pass_count"] == 3
        assert result.duration >= 0.0

    def test_existing_categories_come_first(self, document, producer):
        existing = [Category(id="e1", name="motivation"), Category(id="e2", name="Stress")]

        result = CodingService(producer=producer).code(
            document, CodingOptions(existing_categories=existing)
        )

        assert [c.id for c in result.categories] == ["e1", "e2", "p3"]

    def test_dynamic_personas(self, document):
        producer = ScriptedProducer(claims={})

        result = CodingService(producer=producer).code(
            document, CodingOptions(method=CodingMethod.DYNAMIC_PERSONAS)
        )

        assert producer.calls == ["domain-expert", "methodology-expert", "critical-analyst"]
        assert result.annotations == []
        assert result.consensus_rate == 0.0

    def test_calibrated_pattern(self, document):
        categories = [Category(id="motivation", name="Motivation", description="motivation drive learn")]

        result = CodingService().code(
            {"id": "doc-1", "content": CONTENT},
            CodingOptions(method="calibrated-pattern", existing_categories=categories)
        )

        assert result.method == "calibrated-pattern"
        assert [a.category_id for a in result.annotations] == ["motivation"]

    def test_threshold_override(self, document, producer):
        result = CodingService(producer=producer).code(
            document, CodingOptions(min_agreement_fraction=1 / 3)
        )

        assert len(result.annotations) == 3

    def test_persona_methods_need_producer(self, document):
        with pytest.raises(InvalidConfigurationError):
            CodingService().code(document, CodingOptions(method="three-expert"))

    def test_unknown_method(self, document, producer):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            CodingService(producer=producer).code(document, CodingOptions(method="ultra-fast"))

        assert "three-expert" in exc_info.value.context["supported"]

    def test_method_catalogue(self):
        service = CodingService()

        assert service.available_methods() == [
            CodingMethod.THREE_EXPERT, CodingMethod.DYNAMIC_PERSONAS, CodingMethod.CALIBRATED_PATTERN
        ]
        assert service.method_description("three-expert").startswith("Three experts")
        assert service.method_description(CodingMethod.THREE_EXPERT, "de").startswith("Drei Experten")

    def test_matcher_passes_reach_full_consensus(self, document):
        categories = [Category(id="motivation", name="Motivation", description="motivation drive learn")]
        service = CodingService(producer=MatcherPassProducer())

        result = service.code(document, CodingOptions(existing_categories=categories))

        assert len(result.annotations) == 1
        assert result.annotations[0].confidence == 1.0
        assert result.annotations[0].coded_by == "expert-1"
        assert result.consensus_rate == 1.0
        assert [c.id for c in result.categories] == ["motivation"]
