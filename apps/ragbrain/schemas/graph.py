from __future__ import annotations

from pydantic import Field

from ragbrain.schemas.common import CamelModel, UtcDatetime


class RelatedThought(CamelModel):
    id: str
    text: str
    type: str
    tags: list[str] = Field(default_factory=list)
    created_at: UtcDatetime
    similarity: float = Field(ge=0.0, le=1.0)


class RelatedResponse(CamelModel):
    thought_id: str
    related: list[RelatedThought] = Field(default_factory=list)
    count: int = 0


class GraphNode(CamelModel):
    id: str
    label: str
    cluster_id: str
    x: float
    y: float
    tags: list[str] = Field(default_factory=list)
    recency: float = Field(ge=0.0, le=1.0)
    importance: float = Field(ge=0.0, le=1.0)
    type: str


class GraphEdge(CamelModel):
    source: str
    target: str
    similarity: float = Field(ge=0.0, le=1.0)


class GraphCluster(CamelModel):
    id: str
    label: str
    color: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")
    count: int
    node_ids: list[str] = Field(default_factory=list)


class GraphMetadata(CamelModel):
    total_nodes: int
    total_edges: int
    total_clusters: int
    generated_at: UtcDatetime
    algorithm: str = "k-means"


class GraphResponse(CamelModel):
    clusters: list[GraphCluster] = Field(default_factory=list)
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    metadata: GraphMetadata
