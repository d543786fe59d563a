"""QualCode - Consensus and agreement engine for qualitative coding.

Lightweight package initialization. Import submodules directly where
needed, e.g.:

    from qualcode.agreement import compute_agreement
    from qualcode.matching import PatternMatcher
    from qualcode.consensus import resolve_consensus
"""

__version__ = "1.0.0"
__author__ = "QualCode Team"

__all__ = [
    "__version__",
    "__author__",
]
