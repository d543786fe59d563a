"""
Landis & Koch (1977) interpretation scale shared by all agreement metrics.
"""

from enum import Enum


class Interpretation(Enum):
    """Qualitative agreement buckets."""
    POOR = "poor"
    SLIGHT = "slight"
    FAIR = "fair"
    MODERATE = "moderate"
    SUBSTANTIAL = "substantial"
    ALMOST_PERFECT = "almost-perfect"

    def label(self, language: str = "en") -> str:
        """Display label in English or German."""
        labels = _LABELS.get(language, _LABELS["en"])
        return labels[self]


_LABELS = {
    "en": {
        Interpretation.POOR: "Poor agreement",
        Interpretation.SLIGHT: "Slight agreement",
        Interpretation.FAIR: "Fair agreement",
        Interpretation.MODERATE: "Moderate agreement",
        Interpretation.SUBSTANTIAL: "Substantial agreement",
        Interpretation.ALMOST_PERFECT: "Almost perfect agreement",
    },
    "de": {
        Interpretation.POOR: "Keine Übereinstimmung",
        Interpretation.SLIGHT: "Geringe Übereinstimmung",
        Interpretation.FAIR: "Ausreichende Übereinstimmung",
        Interpretation.MODERATE: "Moderate Übereinstimmung",
        Interpretation.SUBSTANTIAL: "Substanzielle Übereinstimmung",
        Interpretation.ALMOST_PERFECT: "Fast perfekte Übereinstimmung",
    },
}


def interpret(value: float) -> Interpretation:
    """Map an agreement value onto the Landis & Koch scale."""
    if value < 0:
        return Interpretation.POOR
    if value < 0.21:
        return Interpretation.SLIGHT
    if value < 0.41:
        return Interpretation.FAIR
    if value < 0.61:
        return Interpretation.MODERATE
    if value < 0.81:
        return Interpretation.SUBSTANTIAL
    return Interpretation.ALMOST_PERFECT
