"""
tracery Entity Graph
====================

NetworkX-based graph of cross-entity automation.

Design Decisions:
-----------------
1. Uses a NetworkX MultiDiGraph: one edge per CrossEntityLink, so several
   automations between the same pair of entities stay distinguishable
2. Nodes are lower-cased entity logical names carrying the display name
3. Edges carry the full CrossEntityLink as the "link" attribute
4. Thin wrapper so analysis code never touches NetworkX directly

The graph is directed: an edge points from the entity whose automation runs
to the entity whose records it touches.
"""

import networkx as nx
from typing import Iterator, Optional

from .schemas import CrossEntityLink


class EntityGraph:
    """Abstraction layer over NetworkX for cross-entity queries.

    Example Usage:
        graph = EntityGraph()
        for link in links:
            graph.add_link(link)

        graph.outgoing("account")     # links fired by account automation
        graph.incoming("contact")     # links that write contact records
        graph.find_cycles()           # [["account", "contact"], ...]
    """

    def __init__(self):
        """Initialize empty entity graph."""
        self._graph = nx.MultiDiGraph()

    @property
    def nx_graph(self) -> nx.MultiDiGraph:
        """Access underlying NetworkX graph for advanced operations."""
        return self._graph

    def add_entity(self, logical_name: str, display_name: Optional[str] = None) -> None:
        """Add an entity node (or update its display name)."""
        key = logical_name.lower()
        if self._graph.has_node(key) and not display_name:
            return
        self._graph.add_node(key, display_name=display_name or logical_name)

    def add_link(self, link: CrossEntityLink) -> None:
        """Add a cross-entity link, creating both entity nodes if needed."""
        source = link.source_entity.lower()
        target = link.target_entity.lower()

        if not self._graph.has_node(source):
            self.add_entity(source, link.source_entity_display_name)
        if not self._graph.has_node(target):
            self.add_entity(target, link.target_entity_display_name)

        self._graph.add_edge(
            source,
            target,
            link=link,
            automation_type=link.automation_type.value,
            operation=link.operation.value,
        )

    def outgoing(self, entity: str) -> list[CrossEntityLink]:
        """Links whose automation runs on the given entity."""
        key = entity.lower()
        if not self._graph.has_node(key):
            return []
        return [data["link"] for _, _, data in self._graph.out_edges(key, data=True)]

    def incoming(self, entity: str) -> list[CrossEntityLink]:
        """Links whose automation touches the given entity's records."""
        key = entity.lower()
        if not self._graph.has_node(key):
            return []
        return [data["link"] for _, _, data in self._graph.in_edges(key, data=True)]

    def get_successors(self, entity: str) -> Iterator[str]:
        """Entities directly touched by the given entity's automation."""
        key = entity.lower()
        if self._graph.has_node(key):
            yield from self._graph.successors(key)

    def has_path(self, source: str, target: str) -> bool:
        """Check if changes on source can ripple through to target."""
        source, target = source.lower(), target.lower()
        if not self._graph.has_node(source) or not self._graph.has_node(target):
            return False
        return nx.has_path(self._graph, source, target)

    def hub_entities(self, top: int = 5) -> list[tuple[str, int]]:
        """Entities with the most cross-entity links (in + out).

        Returns:
            List of (entity, degree) pairs, highest degree first, ties by name
        """
        degrees = [(node, degree) for node, degree in self._graph.degree() if degree > 0]
        degrees.sort(key=lambda item: (-item[1], item[0]))
        return degrees[:top]

    def find_cycles(self) -> list[list[str]]:
        """Find chains of automation that loop back to their starting entity.

        Returns:
            List of cycles, each a list of entity names starting from the
            lexicographically smallest member
        """
        simple = nx.DiGraph(self._graph)
        cycles = []
        for cycle in nx.simple_cycles(simple):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles)

    @property
    def node_count(self) -> int:
        """Total number of entities in the graph."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Total number of links in the graph."""
        return self._graph.number_of_edges()

    def to_dict(self) -> dict:
        """Convert graph to dictionary for serialization."""
        return {
            "nodes": [
                {"entity": node, "display_name": data.get("display_name", node)}
                for node, data in sorted(self._graph.nodes(data=True))
            ],
            "edges": [
                {
                    "source": source,
                    "target": target,
                    "automation_type": data["automation_type"],
                    "operation": data["operation"],
                }
                for source, target, data in self._graph.edges(data=True)
            ],
            "cycles": self.find_cycles(),
        }
