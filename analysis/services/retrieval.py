"""
Lightweight retrieval over the client-supplied library digest.

No embeddings: related items are found by exact (case-insensitive)
concept overlap with the newly analyzed content.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from decision.question_plan import OpenRecallQuestion, RecallQuestion
from shared.utils.constants import (
    MAX_DIGEST_CONCEPTS,
    MAX_DIGEST_ITEMS,
    MAX_DIGEST_TITLE_LENGTH,
    MAX_RELATED_ITEMS,
    MIN_OVERLAP_CONCEPTS,
    MIN_OVERLAP_RATIO,
)


@dataclass(frozen=True)
class DigestItem:
    content_id: str
    title: str
    concepts: List[str]
    created_at: int = 0


@dataclass(frozen=True)
class RetrievalCandidate:
    item: DigestItem
    overlap_concepts: List[str] = field(default_factory=list)

    @property
    def overlap_score(self) -> int:
        return len(self.overlap_concepts)

    def to_related_item(self) -> Dict[str, Any]:
        return {
            "content_id": self.item.content_id,
            "title": self.item.title,
            "overlap_concepts": list(self.overlap_concepts),
            "overlap_score": self.overlap_score,
        }


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def normalize_library_digest(items: Optional[Iterable[Any]]) -> List[DigestItem]:
    """Trim, cap and drop unusable digest entries (dicts or request models)."""
    if not items:
        return []

    normalized = []
    for raw in list(items)[:MAX_DIGEST_ITEMS]:
        content_id = str(_field(raw, "content_id", "") or "").strip()
        title = str(_field(raw, "title", "") or "").strip()[:MAX_DIGEST_TITLE_LENGTH]
        raw_concepts = _field(raw, "concepts", []) or []
        concepts = [c.strip() for c in raw_concepts if isinstance(c, str) and c.strip()][:MAX_DIGEST_CONCEPTS]
        created_at = _field(raw, "created_at", 0)
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            created_at = 0

        if content_id and title and concepts:
            normalized.append(DigestItem(content_id, title, concepts, int(created_at)))
    return normalized


def compute_retrieval_candidates(
    new_concepts: Sequence[str],
    digest: Sequence[DigestItem],
    limit: int = MAX_RELATED_ITEMS,
) -> List[RetrievalCandidate]:
    """
    Rank digest items by shared concepts.

    An item qualifies with at least MIN_OVERLAP_CONCEPTS shared concepts
    covering at least MIN_OVERLAP_RATIO of the new concept set. Ties on
    overlap go to the more recent item.
    """
    new_set = {c.strip().lower() for c in new_concepts if isinstance(c, str) and c.strip()}
    if not new_set or not digest:
        return []

    candidates = []
    for item in digest:
        overlap: List[str] = []
        seen = set()
        for concept in item.concepts:
            key = concept.strip().lower()
            if key in new_set and key not in seen:
                seen.add(key)
                overlap.append(concept)

        if len(overlap) >= MIN_OVERLAP_CONCEPTS and len(overlap) / len(new_set) >= MIN_OVERLAP_RATIO:
            candidates.append(RetrievalCandidate(item=item, overlap_concepts=overlap))

    candidates.sort(key=lambda c: (c.overlap_score, c.item.created_at), reverse=True)
    return candidates[:limit]


def apply_bridge_question(
    questions: Sequence[RecallQuestion],
    bridge: OpenRecallQuestion,
) -> List[RecallQuestion]:
    """Swap the bridge in for the first open question, else the first question."""
    updated = list(questions)
    for idx, question in enumerate(updated):
        if isinstance(question, OpenRecallQuestion):
            updated[idx] = bridge
            return updated
    if updated:
        updated[0] = bridge
        return updated
    return [bridge]
