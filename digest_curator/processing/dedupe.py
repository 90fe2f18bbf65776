"""
Title-based deduplication for scored items.

Titles are normalized to word sets and compared with Jaccard similarity
against every accepted cluster representative. Similar items collapse into
one cluster whose representative is the highest-scoring member.
"""

from dataclasses import dataclass, field

from ..ingest.items import ScoredItem
from ..logging import PipelineStage, get_logger, log_processing_stage
from .text_utils import jaccard_similarity, title_words

logger = get_logger(__name__)

DEFAULT_DEDUPE_THRESHOLD = 0.6


@dataclass
class DuplicateGroup:
    """Group of duplicate items."""
    canonical: ScoredItem
    duplicates: list[ScoredItem] = field(default_factory=list)
    similarity_scores: list[float] = field(default_factory=list)
    method: str = "title_jaccard"


class TitleDeduplicator:
    """Jaccard title deduplication over an indexed cluster collection.

    ``clusters`` maps a cluster id to its current representative. Cluster
    ids are assigned in order of first appearance, so iterating the dict
    yields output in input order.
    """

    def __init__(self, threshold: float = DEFAULT_DEDUPE_THRESHOLD):
        if not 0 <= threshold <= 1:
            raise ValueError("Deduplication threshold must be between 0 and 1")
        self.threshold = threshold
        self.clusters: dict[int, ScoredItem] = {}
        self._words: dict[int, frozenset[str]] = {}
        self._groups: dict[int, DuplicateGroup] = {}
        self._next_id = 0

    def _matching_clusters(self, words: frozenset[str]) -> list[tuple[int, float]]:
        matches = []
        for cluster_id, rep_words in self._words.items():
            similarity = jaccard_similarity(words, rep_words)
            if similarity >= self.threshold:
                matches.append((cluster_id, similarity))
        return matches

    def add(self, scored: ScoredItem) -> int:
        """Place one item into a cluster; returns the cluster id."""
        words = title_words(scored.item.title)
        matches = self._matching_clusters(words)

        if not matches:
            cluster_id = self._next_id
            self._next_id += 1
            self.clusters[cluster_id] = scored
            self._words[cluster_id] = words
            self._groups[cluster_id] = DuplicateGroup(canonical=scored)
            return cluster_id

        # Merge every matched cluster into the earliest one
        target_id = matches[0][0]
        group = self._groups[target_id]
        best = self.clusters[target_id]

        for cluster_id, _ in matches[1:]:
            other = self._groups.pop(cluster_id)
            rep = self.clusters.pop(cluster_id)
            self._words.pop(cluster_id)
            group.duplicates.extend([other.canonical, *other.duplicates])
            group.similarity_scores.extend([
                jaccard_similarity(title_words(other.canonical.item.title), words),
                *other.similarity_scores,
            ])
            if rep.score > best.score:
                best = rep

        group.duplicates.append(scored)
        group.similarity_scores.append(matches[0][1])
        if scored.score > best.score:
            best = scored

        if best is not group.canonical:
            group.duplicates = [m for m in [group.canonical, *group.duplicates] if m is not best]
            group.canonical = best

        self.clusters[target_id] = best
        self._words[target_id] = title_words(best.item.title)
        return target_id

    def deduplicate(self, items: list[ScoredItem]) -> tuple[list[ScoredItem], list[DuplicateGroup]]:
        """Deduplicate items.

        Returns:
            (representatives in order of cluster first appearance,
             groups that absorbed at least one duplicate)
        """
        for scored in items:
            self.add(scored)

        kept = list(self.clusters.values())
        groups = [g for g in self._groups.values() if g.duplicates]

        logger.info(
            "Deduplication complete",
            **log_processing_stage(
                PipelineStage.DEDUPE, len(items), len(kept),
                duplicate_groups=len(groups), threshold=self.threshold,
            ),
        )
        return kept, groups


def dedupe(items: list[ScoredItem], threshold: float = DEFAULT_DEDUPE_THRESHOLD) -> list[ScoredItem]:
    """Collapse near-duplicate titles, keeping the highest-scoring member."""
    kept, _ = TitleDeduplicator(threshold).deduplicate(items)
    return kept
