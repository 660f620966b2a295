import logging
from typing import Dict, Iterable, List, Optional
from phone_assistant.models.assistant import AssistantNode

logger = logging.getLogger(__name__)

class NodeRepository:
    """
    Read-only view over a flat list of nodes linked by parent ids.

    The repository never copies or validates the list it wraps; mutations
    return new lists and leave the wrapped one untouched.
    """

    def __init__(self, nodes: List[AssistantNode]):
        self.nodes = nodes
        self._by_id: Dict[str, AssistantNode] = {n.id: n for n in nodes}

    def find(self, node_id: str) -> Optional[AssistantNode]:
        return self._by_id.get(node_id)

    def children(self, parent_id: str) -> List[AssistantNode]:
        # sorted() is stable, so equal orders keep insertion order
        return sorted((n for n in self.nodes if n.parent_id == parent_id), key=lambda n: n.order)

    def root(self) -> Optional[AssistantNode]:
        return next((n for n in self.nodes if n.parent_id is None), None)

    def replace(self, nodes: List[AssistantNode]) -> List[AssistantNode]:
        self.nodes = nodes
        self._by_id = {n.id: n for n in nodes}
        return nodes

    def path_to(self, node_id: str) -> List[AssistantNode]:
        """Nodes from the root down to node_id, inclusive."""
        path = []
        seen = set()
        current = self.find(node_id)
        while current and current.id not in seen:
            seen.add(current.id)
            path.insert(0, current)
            current = self.find(current.parent_id) if current.parent_id else None
        return path

    def descendant_ids(self, node_id: str) -> List[str]:
        """
        Ids of every descendant of node_id in post-order (children first).
        A visited set stops the walk on corrupted, cyclic input.
        """
        result: List[str] = []
        visited = {node_id}
        stack = [(node_id, iter(self.children(node_id)))]

        while stack:
            parent_id, kids = stack[-1]
            child = next(kids, None)
            if child is None:
                stack.pop()
                if stack:
                    result.append(parent_id)
                continue
            if child.id in visited:
                logger.warning(f"Cycle detected below node {parent_id} at {child.id}")
                continue
            visited.add(child.id)
            stack.append((child.id, iter(self.children(child.id))))

        return result

    def insert(self, node: AssistantNode) -> List[AssistantNode]:
        return self.nodes + [node]

    def remove(self, node_ids: Iterable[str]) -> List[AssistantNode]:
        doomed = set(node_ids)
        return [n for n in self.nodes if n.id not in doomed]
