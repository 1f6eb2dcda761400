"""Relation graph over thought embeddings.

`related` ranks neighbours of one thought; `graph` builds the full (optionally
month-filtered) structure: one node per embedded thought, similarity edges, and
k-means topic clusters laid out on a circle of spirals. Every edge endpoint and
cluster member is a node of the same response.
"""

from __future__ import annotations

import json
import logging
import math
import random
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage
from sqlmodel import Session, select

from ragbrain.core.exceptions import ValidationError
from ragbrain.core.settings import settings
from ragbrain.core.utils import truncate, utcnow
from ragbrain.models.thought import Thought
from ragbrain.schemas.graph import (
    GraphCluster,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    GraphResponse,
    RelatedResponse,
    RelatedThought,
)
from ragbrain.services.similarity import cosine_similarity, unit_similarity
from ragbrain.services.text_rules import parse_month
from ragbrain.services.thought_service import ThoughtService

logger = logging.getLogger(__name__)

CLUSTER_COLORS = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FECA57",
    "#DDA0DD",
    "#87CEEB",
    "#F0E68C",
)
DEFAULT_LABEL = "Miscellaneous"
RELATED_LIMIT = 10
KMEANS_MAX_ITERATIONS = 50
KMEANS_SEED = 7
CLUSTER_RADIUS = 150.0
CLUSTER_SPREAD = 80.0
NODE_LABEL_CHARS = 60
ONE_YEAR_SECONDS = 365 * 24 * 3600.0

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def optimal_k(n: int) -> int:
    if n <= 0:
        return 0
    return min(n, min(6, max(3, int(math.floor(math.sqrt(n / 5))))))


def kmeans_cosine(
    vectors: Sequence[Sequence[float]],
    k: int,
    *,
    max_iterations: int = KMEANS_MAX_ITERATIONS,
    seed: int = KMEANS_SEED,
) -> list[int]:
    """Cluster `vectors` by cosine distance; returns one cluster index per vector.

    Seeding is k-means++ with a fixed RNG seed, so equal inputs give equal output.
    """
    n = len(vectors)
    if n == 0 or k <= 0:
        return []
    rng = random.Random(seed)

    centroids: list[list[float]] = [list(vectors[rng.randrange(n)])]
    while len(centroids) < k:
        weights = [
            max(0.0, 1.0 - max(cosine_similarity(v, c) for c in centroids)) ** 2 for v in vectors
        ]
        total = sum(weights)
        if total <= 0:
            break  # every remaining point coincides with a centroid
        pick = rng.random() * total
        acc = 0.0
        chosen = n - 1
        for idx, weight in enumerate(weights):
            acc += weight
            if acc >= pick:
                chosen = idx
                break
        centroids.append(list(vectors[chosen]))

    assignments = [-1] * n
    for _ in range(max_iterations):
        changed = False
        for idx, vector in enumerate(vectors):
            best = max(range(len(centroids)), key=lambda c: cosine_similarity(vector, centroids[c]))
            if best != assignments[idx]:
                assignments[idx] = best
                changed = True
        if not changed:
            break
        for c in range(len(centroids)):
            members = [vectors[i] for i in range(n) if assignments[i] == c]
            if members:
                dim = len(members[0])
                centroids[c] = [sum(m[d] for m in members) / len(members) for d in range(dim)]
    return assignments


def layout(cluster_members: Sequence[Sequence[str]]) -> dict[str, tuple[float, float]]:
    """Cluster centres on a circle, members on a spiral around their centre."""
    positions: dict[str, tuple[float, float]] = {}
    total = len(cluster_members)
    for ci, members in enumerate(cluster_members):
        angle = (2 * math.pi * ci / total) if total else 0.0
        cx = CLUSTER_RADIUS * math.cos(angle) if total > 1 else 0.0
        cy = CLUSTER_RADIUS * math.sin(angle) if total > 1 else 0.0
        count = len(members)
        for i, node_id in enumerate(members):
            frac = i / count
            radius = CLUSTER_SPREAD * (0.3 + 0.7 * frac)
            theta = frac * 4 * math.pi
            positions[node_id] = (
                round(cx + radius * math.cos(theta), 3),
                round(cy + radius * math.sin(theta), 3),
            )
    return positions


def build_edges(
    thoughts: Sequence[Thought], *, min_similarity: float, max_per_node: int
) -> list[GraphEdge]:
    pairs: list[tuple[float, str, str]] = []
    for i, a in enumerate(thoughts):
        for b in thoughts[i + 1 :]:
            sim = unit_similarity(a.embedding or [], b.embedding or [])
            if sim >= min_similarity:
                pairs.append((sim, a.id, b.id))
    pairs.sort(key=lambda p: (-p[0], p[1], p[2]))

    degree: Counter[str] = Counter()
    edges: list[GraphEdge] = []
    for sim, source, target in pairs:
        if degree[source] >= max_per_node or degree[target] >= max_per_node:
            continue
        degree[source] += 1
        degree[target] += 1
        edges.append(GraphEdge(source=source, target=target, similarity=round(sim, 4)))
    return edges


def _recency(thought: Thought, now: datetime) -> float:
    age = (now - thought.created_at).total_seconds()
    return max(0.0, min(1.0, 1.0 - age / ONE_YEAR_SECONDS))


def tag_label(thoughts: Sequence[Thought]) -> str:
    counts: Counter[str] = Counter()
    for thought in thoughts:
        counts.update(thought.all_tags())
    if not counts:
        return DEFAULT_LABEL
    top = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:2]
    return " / ".join(tag for tag, _ in top)


@dataclass
class GraphService:
    """Read-only relation views over enriched thoughts."""

    session: Session
    chat_model: BaseChatModel | None = None

    def related(self, thought_id: str, *, limit: int = RELATED_LIMIT) -> RelatedResponse:
        thought = ThoughtService(self.session).get(thought_id)
        if not thought.embedding:
            return RelatedResponse(thought_id=thought.id, related=[], count=0)

        stmt = select(Thought).where(Thought.deleted_at.is_(None)).where(Thought.id != thought.id)
        scored = [
            (cand, unit_similarity(thought.embedding, cand.embedding))
            for cand in self.session.exec(stmt)
            if cand.embedding
        ]
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))
        related = [
            RelatedThought(
                id=cand.id,
                text=cand.text,
                type=cand.type,
                tags=cand.all_tags(),
                created_at=cand.created_at,
                similarity=round(sim, 4),
            )
            for cand, sim in scored[:limit]
        ]
        return RelatedResponse(thought_id=thought.id, related=related, count=len(related))

    def graph(
        self, *, month: str | None = None, min_similarity: float | None = None
    ) -> GraphResponse:
        threshold = settings.graph_min_similarity if min_similarity is None else min_similarity
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError("minSimilarity must be between 0 and 1")
        bounds = parse_month(month)

        stmt = select(Thought).where(Thought.deleted_at.is_(None))
        if bounds is not None:
            start, end = bounds
            stmt = stmt.where(Thought.created_at >= start).where(Thought.created_at < end)
        stmt = stmt.order_by(Thought.created_at, Thought.id)
        thoughts = [t for t in self.session.exec(stmt) if t.embedding]

        now = utcnow()
        if not thoughts:
            return GraphResponse(
                metadata=GraphMetadata(
                    total_nodes=0, total_edges=0, total_clusters=0, generated_at=now
                )
            )

        assignments = kmeans_cosine([t.embedding or [] for t in thoughts], optimal_k(len(thoughts)))
        grouped: dict[int, list[Thought]] = {}
        for thought, cluster in zip(thoughts, assignments):
            grouped.setdefault(cluster, []).append(thought)
        ordered_groups = [grouped[c] for c in sorted(grouped)]

        clusters: list[GraphCluster] = []
        cluster_of: dict[str, str] = {}
        for index, members in enumerate(ordered_groups):
            cluster_id = f"cluster-{index}"
            node_ids = [t.id for t in members]
            for node_id in node_ids:
                cluster_of[node_id] = cluster_id
            clusters.append(
                GraphCluster(
                    id=cluster_id,
                    label=self._label(members),
                    color=CLUSTER_COLORS[index % len(CLUSTER_COLORS)],
                    count=len(node_ids),
                    node_ids=node_ids,
                )
            )

        positions = layout([[t.id for t in members] for members in ordered_groups])
        nodes = [
            GraphNode(
                id=t.id,
                label=truncate(t.text, NODE_LABEL_CHARS),
                cluster_id=cluster_of[t.id],
                x=positions[t.id][0],
                y=positions[t.id][1],
                tags=t.all_tags(),
                recency=_recency(t, now),
                importance=max(0.0, min(1.0, t.decision_score)),
                type=t.type,
            )
            for t in thoughts
        ]
        edges = build_edges(
            thoughts, min_similarity=threshold, max_per_node=settings.graph_max_edges_per_node
        )
        logger.info(
            "Built graph: %d nodes, %d edges, %d clusters", len(nodes), len(edges), len(clusters)
        )
        return GraphResponse(
            clusters=clusters,
            nodes=nodes,
            edges=edges,
            metadata=GraphMetadata(
                total_nodes=len(nodes),
                total_edges=len(edges),
                total_clusters=len(clusters),
                generated_at=now,
            ),
        )

    def _label(self, members: Sequence[Thought]) -> str:
        fallback = tag_label(members)
        if not settings.enable_llm_theme_labels:
            return fallback
        sample = "\n".join(
            f"{i}. {truncate(t.text, 200)}" for i, t in enumerate(members[:10], start=1)
        )
        prompt = (
            "Analyze these related thoughts from a personal knowledge base and name the theme "
            'that connects them. Respond with JSON only: {"label": "2-4 word theme title"}\n\n'
            f"Thoughts:\n{sample}"
        )
        try:
            model = self.chat_model
            if model is None:
                from ragbrain.core.llm_factory import get_chat_model  # noqa: PLC0415

                model = get_chat_model()
            content = model.invoke([HumanMessage(content=prompt)]).content
            match = _JSON_OBJECT.search(content if isinstance(content, str) else "")
            label = json.loads(match.group(0)).get("label") if match else None
        except Exception as exc:
            logger.warning("Cluster labelling failed, using tag label: %s", exc)
            return fallback
        return label.strip() if isinstance(label, str) and label.strip() else fallback


__all__ = [
    "CLUSTER_COLORS",
    "GraphService",
    "build_edges",
    "kmeans_cosine",
    "layout",
    "optimal_k",
    "tag_label",
]
