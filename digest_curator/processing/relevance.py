"""
Term-based relevance scoring.

Weighted keyword categories describe the digest's focus areas (code search,
context management, retrieval, agentic workflows, enterprise codebases).
The term score is an independent 0-10 relevance signal that can be blended
with LLM ratings (``hybrid_score``) and used as an admission rule
(``should_include_item``).
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..ingest.items import CandidateItem, ScoredItem
from ..logging import PipelineStage, get_logger, log_processing_stage
from .text_utils import normalize_for_terms

logger = get_logger(__name__)

NEUTRAL_TERM_SCORE = 5.0
MAX_MATCHED_TERMS = 10


@dataclass(frozen=True)
class TermCategory:
    """Weighted group of domain terms."""
    name: str
    weight: float
    terms: tuple[str, ...]


@dataclass(frozen=True)
class TermScoreResult:
    """Term scoring result."""
    term_score: float  # 0.0 to 10.0
    matched_terms: tuple[str, ...]
    primary_category: str
    boost_factor: float  # 1.0 to 1.5


@dataclass(frozen=True)
class HybridScore:
    """LLM score blended with the term score."""
    final_score: float
    breakdown: TermScoreResult


DEFAULT_TERM_CATEGORIES: tuple[TermCategory, ...] = (
    TermCategory("information_retrieval", 1.5, (
        'semantic search', 'semantic code search', 'vector search', 'embedding',
        'retrieval', 'retrieval-augmented', 'rag', 'dense retrieval', 'sparse retrieval',
        'hybrid search', 'bm25', 'vector database', 'embedding model', 'similarity search',
        'nearest neighbor', 'knn', 'approximate nearest neighbor', 'ann',
        'full-text search', 'information retrieval', 'ir system', 'search quality',
        'ranking algorithm', 'relevance ranking', 'information need', 'query understanding',
        'passage retrieval', 'document retrieval', 'reranking', 'cross-encoder',
        'milvus', 'weaviate', 'qdrant', 'pinecone', 'elasticsearch', 'vector store',
        'knowledge base', 'knowledge retrieval', 'fact retrieval',
    )),
    TermCategory("context_management", 1.5, (
        'context window', 'context management', 'context length', 'long context',
        'context compression', 'prompt compression', 'context-aware', 'context expansion',
        'sliding window', 'context windowing', 'conversation history', 'session management',
        'state management', 'context retention', 'context overflow', 'context limit',
        'token budget', 'token limit', 'attention window', 'context padding',
        'multi-document context', 'context synthesis', 'information fusion', 'context fusion',
        'memory management', 'memory augmented', 'memory-augmented generation', 'mag',
        'working memory', 'external memory',
    )),
    TermCategory("code_search", 1.6, (
        'code search', 'semantic code search', 'codebase search', 'code discovery',
        'code navigation', 'code understanding', 'code comprehension', 'code indexing',
        'code analysis', 'code intelligence', 'code insight', 'code search engine',
        'code-to-code search', 'cross-repo search', 'cross-repository search',
        'code similarity', 'code clone detection', 'code matching', 'code retrieval',
        'api discovery', 'library discovery', 'dependency discovery', 'code reuse',
        'code mining', 'source code analysis', 'program analysis', 'static analysis',
        'codebase understanding', 'codebase exploration', 'developer assistant',
        'code copilot', 'ai coding assistant', 'code completion', 'code suggestion',
    )),
    TermCategory("agentic_systems", 1.4, (
        'agent', 'agentic', 'multi-agent', 'agent framework', 'agent system',
        'tool use', 'tool calling', 'function calling', 'agent action', 'agent reasoning',
        'workflow', 'workflow orchestration', 'orchestration', 'autonomous agent',
        'agent planning', 'planning algorithm', 'decision making', 'action selection',
        'observation', 'reward', 'agent evaluation', 'agent benchmark',
        'react framework', 'think-act-observe', 'agent loop', 'execution loop',
        'agent architecture', 'agent design', 'tool integration', 'skill',
        'tool composition', 'multi-step reasoning', 'chain-of-thought', 'reasoning',
        'agent collaboration', 'multi-agent system', 'agent communication',
        'code agent', 'software engineering agent', 'ai programmer', 'code generator',
        'bug fixer', 'code reviewer agent', 'refactoring agent',
    )),
    TermCategory("enterprise_codebases", 1.3, (
        'large codebase', 'enterprise codebase', 'monorepo', 'polyrepo',
        'multi-repo', 'repository management', 'code organization', 'code structure',
        'modular code', 'component-based', 'microservices', 'service-oriented',
        'large-scale system', 'scalable architecture', 'distributed system',
        'codebase scale', 'code dependency', 'dependency graph', 'dependency management',
        'version control', 'version control at scale', 'git', 'git workflow',
        'merge conflict', 'code review', 'code review process', 'pull request',
        'continuous integration', 'ci/cd', 'build system', 'large team collaboration',
        'enterprise architecture', 'architectural pattern', 'design pattern',
        'cross-team coordination', 'knowledge sharing', 'code documentation',
    )),
    TermCategory("developer_tools", 1.2, (
        'developer tools', 'developer experience', 'developer productivity', 'devex',
        'ide', 'integrated development environment', 'code editor', 'editor plugin',
        'developer environment', 'development environment', 'dev environment',
        'debugging', 'debugger', 'profiler', 'performance analysis',
        'testing tool', 'test framework', 'test automation', 'testing automation',
        'linting', 'code quality', 'static analyzer', 'type checker',
        'refactoring tool', 'code refactoring', 'code transformation',
        'build tool', 'package manager', 'dependency resolver',
        'documentation tool', 'doc generation', 'api documentation',
        'developer workflow', 'development workflow', 'developer adoption',
        'ai coding', 'copilot', 'code assistant', 'intelligent assistance',
    )),
    TermCategory("llm_code_architecture", 1.2, (
        'large language model', 'llm', 'foundation model', 'pre-trained model',
        'code model', 'code llm', 'specialized code model', 'programming language model',
        'model architecture', 'transformer', 'attention mechanism', 'multi-head attention',
        'prompt engineering', 'prompt design', 'few-shot learning', 'in-context learning',
        'fine-tuning', 'instruction tuning', 'reinforcement learning from feedback', 'rlhf',
        'reasoning', 'chain-of-thought reasoning', 'step-by-step reasoning',
        'knowledge distillation', 'model compression', 'quantization', 'pruning',
        'context length extension', 'long context modeling', 'efficient attention',
        'retrieval-augmented', 'knowledge-augmented', 'fact grounding',
        'hallucination detection', 'hallucination mitigation', 'uncertainty quantification',
    )),
    TermCategory("sdlc_processes", 1.0, (
        'software development', 'development lifecycle', 'sdlc', 'development process',
        'development methodology', 'agile', 'scrum', 'kanban', 'ci/cd',
        'requirement analysis', 'design phase', 'implementation', 'testing phase',
        'deployment', 'maintenance', 'documentation', 'knowledge management',
        'issue tracking', 'bug tracking', 'task management', 'project management',
        'code review', 'peer review', 'code quality assurance', 'qa',
        'software engineering', 'software quality', 'software reliability',
        'software architecture', 'architectural decision', 'design review',
    )),
)

# Adjacent focus area, off by default
SECURITY_QUALITY_CATEGORY = TermCategory("security_quality", 0.9, (
    'code security', 'secure coding', 'security analysis', 'vulnerability detection',
    'static security analysis', 'sast', 'dynamic analysis', 'dast',
    'code quality', 'quality metrics', 'code smell', 'technical debt',
    'maintainability', 'readability', 'test coverage', 'code coverage',
    'performance optimization', 'efficiency', 'resource efficiency',
    'compliance', 'regulatory', 'audit', 'governance',
))


def match_strength(text: str, term: str) -> float:
    """Graded confidence that ``term`` appears in ``text``.

    1.0 substring match (so "agents" matches "agent"), 0.9 single word
    present, 0.95 multi-word phrase with irregular spacing, 0.8 all words
    in order with gaps, 0.6 all words in any order, 0.0 otherwise.
    """
    normalized_text = normalize_for_terms(text)
    normalized_term = normalize_for_terms(term)
    if not normalized_term:
        return 0.0

    if normalized_term in normalized_text:
        return 1.0

    term_words = normalized_term.split()
    text_words = normalized_text.split()

    if len(term_words) == 1:
        return 0.9 if term_words[0] in text_words else 0.0

    if re.search(r'\b' + r'\s+'.join(re.escape(w) for w in term_words) + r'\b', normalized_text):
        return 0.95

    position = 0
    in_order = True
    for word in term_words:
        try:
            position = text_words.index(word, position) + 1
        except ValueError:
            in_order = False
            break
    if in_order:
        return 0.8

    present = set(text_words)
    if all(word in present for word in term_words):
        return 0.6

    return 0.0


def term_score(
    title: str,
    summary: str = "",
    tags: Iterable[str] = (),
    categories: tuple[TermCategory, ...] = DEFAULT_TERM_CATEGORIES,
) -> TermScoreResult:
    """Score text against the weighted term categories.

    With no matches at all the result is the neutral score 5.0 with
    primary category ``"none"``.
    """
    full_text = f"{title or ''} {summary or ''} {' '.join(tags)}"

    # (category, per-category score, matched terms)
    matches: list[tuple[TermCategory, float, list[str]]] = []
    for category in categories:
        matched: list[str] = []
        total = 0.0
        for term in category.terms:
            strength = match_strength(full_text, term)
            if strength > 0:
                matched.append(term)
                total += strength
        if matched:
            matches.append((category, min(10.0, total / len(category.terms) * 10), matched))

    if not matches:
        return TermScoreResult(
            term_score=NEUTRAL_TERM_SCORE,
            matched_terms=(),
            primary_category="none",
            boost_factor=1.0,
        )

    total_weight = sum(category.weight for category, _, _ in matches)
    weighted = sum(score * category.weight for category, score, _ in matches) / total_weight
    match_count = sum(len(terms) for _, _, terms in matches)
    match_floor = min(10.0, 3.0 + 1.5 * len(matches) + 0.5 * match_count)

    primary, primary_score, _ = matches[0]
    for category, score, _ in matches[1:]:
        if score > primary_score:
            primary, primary_score = category, score

    all_terms = [term for _, _, terms in matches for term in terms]

    return TermScoreResult(
        term_score=min(10.0, max(0.0, max(match_floor, weighted))),
        matched_terms=tuple(all_terms[:MAX_MATCHED_TERMS]),
        primary_category=primary.name,
        boost_factor=min(1.5, 1.0 + 0.1 * len(matches)),
    )


def hybrid_score(
    llm_score: float,
    title: str,
    summary: str = "",
    tags: Iterable[str] = (),
    categories: tuple[TermCategory, ...] = DEFAULT_TERM_CATEGORIES,
    breakdown: TermScoreResult | None = None,
) -> HybridScore:
    """Blend an LLM score (70%) with the term score (30%).

    Strong term presence multiplies by the boost factor and lifts weak LLM
    scores to at least 5; absent terms shave 10% off confident LLM scores.
    A precomputed ``breakdown`` skips re-scoring the text.
    """
    if breakdown is None:
        breakdown = term_score(title, summary, tags, categories)

    llm_confidence = llm_score / 10
    term_confidence = breakdown.term_score / 10

    final = llm_score * 0.7 + breakdown.term_score * 0.3

    if term_confidence > 0.6:
        final *= breakdown.boost_factor

    if term_confidence > 0.7 and llm_confidence < 0.4:
        final = max(5.0, final)

    if term_confidence < 0.3 and llm_confidence > 0.7:
        final *= 0.9

    return HybridScore(final_score=min(10.0, max(0.0, final)), breakdown=breakdown)


def should_include_item(llm_score: float, term_score: float, min_threshold: float = 5.0) -> bool:
    """Admission rule combining the LLM and term scores."""
    if llm_score >= 8:
        return True
    if llm_score >= 6 and term_score >= 4:
        return True
    if llm_score >= min_threshold and term_score >= 3:
        return True
    return term_score >= 7


def log_term_score_debug(item_id: str, title: str, llm_score: float, hybrid: HybridScore) -> None:
    """Emit one structured debug line for a hybrid-scored item."""
    logger.debug(
        "Term scoring",
        item_id=item_id,
        title=title[:60],
        llm_score=llm_score,
        term_score=hybrid.breakdown.term_score,
        final_score=hybrid.final_score,
        boost_factor=hybrid.breakdown.boost_factor,
        category=hybrid.breakdown.primary_category,
        match_count=len(hybrid.breakdown.matched_terms),
        top_matches=", ".join(hybrid.breakdown.matched_terms[:3]),
    )


class TermScorer:
    """Bulk term scoring for candidate items."""

    def __init__(self, categories: tuple[TermCategory, ...] = DEFAULT_TERM_CATEGORIES):
        self.categories = categories

    def score(self, item: CandidateItem) -> TermScoreResult:
        return term_score(item.title, item.body_text, sorted(item.tags), self.categories)

    def score_items(self, items: list[CandidateItem]) -> dict[str, TermScoreResult]:
        """Term-score items, keyed by item id."""
        results = {item.id: self.score(item) for item in items}
        matched = sum(1 for r in results.values() if r.primary_category != "none")
        logger.info(
            "Term scoring complete",
            **log_processing_stage(PipelineStage.TERM_SCORING, len(items), len(results), matched=matched),
        )
        return results


def apply_hybrid_scores(
    scored: list[ScoredItem],
    min_threshold: float = 5.0,
    categories: tuple[TermCategory, ...] = DEFAULT_TERM_CATEGORIES,
    term_scores: Mapping[str, TermScoreResult] | None = None,
) -> list[ScoredItem]:
    """Replace LLM scores with hybrid scores and drop items failing admission.

    Admission uses the raw LLM score together with the term score.
    ``term_scores`` (keyed by item id, as from ``TermScorer.score_items``)
    is reused where present; other items are scored here.
    """
    term_scores = term_scores or {}
    kept: list[ScoredItem] = []
    for entry in scored:
        item = entry.item
        hybrid = hybrid_score(
            entry.score, item.title, item.body_text, sorted(item.tags), categories,
            breakdown=term_scores.get(item.id),
        )
        log_term_score_debug(item.id, item.title, entry.score, hybrid)

        if should_include_item(entry.score, hybrid.breakdown.term_score, min_threshold):
            kept.append(ScoredItem(item=item, score=hybrid.final_score, reasoning=entry.reasoning))

    kept.sort(key=lambda s: s.score, reverse=True)
    logger.info("Hybrid scoring applied", **log_processing_stage(PipelineStage.HYBRID, len(scored), len(kept)))
    return kept
