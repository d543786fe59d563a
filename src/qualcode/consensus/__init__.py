"""
Multi-pass consensus coding modules.

This package aligns claims from independent coding passes, keeps the claims
enough passes agree on and dispatches documents to the automated coding
methods.
"""

from .passes import (
    THREE_EXPERT_PERSONAS, MatcherPassProducer, PassProducer, Persona,
    detect_content_type, dynamic_personas
)
from .resolver import (
    CodingPass, ConsensusGroup, ConsensusResolver, ConsensusResult, required_passes,
    resolve_consensus
)
from .service import CodingMethod, CodingOptions, CodingService
from .similarity import names_similar, normalize_name, taxonomy_key, token_overlap

__all__ = [
    'THREE_EXPERT_PERSONAS',
    'MatcherPassProducer',
    'PassProducer',
    'Persona',
    'detect_content_type',
    'dynamic_personas',
    'CodingPass',
    'ConsensusGroup',
    'ConsensusResolver',
    'ConsensusResult',
    'required_passes',
    'resolve_consensus',
    'CodingMethod',
    'CodingOptions',
    'CodingService',
    'names_similar',
    'normalize_name',
    'taxonomy_key',
    'token_overlap',
]
