"""Content processing module."""

from .buckets import BucketAssembler, DigestSelection, assemble
from .classifier import ClassificationResult, ClassifierTables, classify, classify_items
from .dedupe import DuplicateGroup, TitleDeduplicator, dedupe
from .relevance import (
    HybridScore,
    TermScorer,
    TermScoreResult,
    apply_hybrid_scores,
    hybrid_score,
    should_include_item,
    term_score,
)
from .scoring import HeuristicScorer, HeuristicWeights, SourceCategory, heuristic_score

__all__ = [
    'classify',
    'classify_items',
    'ClassificationResult',
    'ClassifierTables',
    'heuristic_score',
    'HeuristicScorer',
    'HeuristicWeights',
    'SourceCategory',
    'term_score',
    'hybrid_score',
    'should_include_item',
    'apply_hybrid_scores',
    'TermScorer',
    'TermScoreResult',
    'HybridScore',
    'dedupe',
    'TitleDeduplicator',
    'DuplicateGroup',
    'assemble',
    'BucketAssembler',
    'DigestSelection',
]
