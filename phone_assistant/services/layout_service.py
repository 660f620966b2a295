"""
Flowchart layout for the dialog tree.

Computes deterministic positions for every node so the live view and the
SVG/PDF exports draw the same picture:
- Node heights grow with their content (announcement, translations, options)
- Subtrees are laid out left to right, parents centered above their children
- Rows are stacked by accumulated content height, not a fixed row height
"""
import logging
import math
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from phone_assistant.models.assistant import AssistantNode, NodeType
from phone_assistant.services.node_repository import NodeRepository

logger = logging.getLogger(__name__)


class LayoutSettings(BaseModel):
    # Fixed box width; long text wraps inside it.
    node_width: float = 220
    # Horizontal space between sibling subtrees.
    gap_x: float = 24
    # Vertical space between a parent's bottom edge and its children.
    gap_y: float = 50
    # Left edge of the whole tree and top edge of the root.
    start_x: float = 50
    top_offset: float = 0

    # Height estimate
    min_height: float = 130
    base_height: float = 70
    chars_per_line: int = 38
    line_height: float = 14
    title_line_height: float = 18
    badge_row_height: float = 22
    option_line_height: float = 16


class NodeBox(BaseModel):
    node_id: str
    x: float
    y: float
    width: float
    height: float
    # Width of the whole subtree rooted here
    span: float
    depth: int


class Bounds(BaseModel):
    width: float = 0
    height: float = 0


class LayoutResult(BaseModel):
    # Insertion order is pre-order: root first, siblings by ascending order
    boxes: Dict[str, NodeBox] = {}
    edges: List[Tuple[str, str]] = []
    bounds: Bounds = Field(default_factory=Bounds)

    @property
    def is_empty(self) -> bool:
        return not self.boxes


def wrapped_lines(text: Optional[str], chars_per_line: int) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_line)

def estimate_height(node: AssistantNode, settings: LayoutSettings) -> float:
    height = settings.base_height
    height += wrapped_lines(node.announcement_text, settings.chars_per_line) * settings.line_height

    for lang in node.active_languages():
        height += settings.title_line_height
        text = node.localized_announcement_texts.get(lang)
        height += wrapped_lines(text, settings.chars_per_line) * settings.line_height

    has_forward = node.type == NodeType.FORWARD and bool(node.forward_number)
    has_options = node.has_options and bool(node.options)
    if node.tag or has_forward or node.is_important or has_options:
        height += settings.badge_row_height
    if has_options:
        height += len(node.options) * settings.option_line_height

    return max(settings.min_height, height)


def calculate_layout(nodes: List[AssistantNode], settings: Optional[LayoutSettings] = None) -> LayoutResult:
    """
    Lays out the tree below the root of nodes.

    Returns an empty result when there is no root. The function is pure: the
    same nodes and settings always give the same coordinates.
    """
    settings = settings or LayoutSettings()
    repo = NodeRepository(nodes)
    root = repo.root()
    if not root:
        logger.debug("No root node, returning empty layout")
        return LayoutResult()

    heights = {n.id: estimate_height(n, settings) for n in nodes}
    edges: List[Tuple[str, str]] = []
    children_of: Dict[str, List[str]] = {}
    depths: Dict[str, int] = {root.id: 0}
    parents: Dict[str, str] = {}

    # Pre-order walk on an explicit stack, no recursion depth limit
    order: List[str] = []
    visited = {root.id}
    stack = [root.id]
    while stack:
        node_id = stack.pop()
        order.append(node_id)
        if node_id in parents:
            edges.append((parents[node_id], node_id))
        kids = [c.id for c in repo.children(node_id) if c.id not in visited]
        visited.update(kids)
        children_of[node_id] = kids
        for kid in kids:
            parents[kid] = node_id
            depths[kid] = depths[node_id] + 1
        stack.extend(reversed(kids))

    # Post-order: a node's span depends on its children's spans
    spans: Dict[str, float] = {}
    children_spans: Dict[str, float] = {}
    for node_id in reversed(order):
        kids = children_of[node_id]
        if not kids:
            spans[node_id] = settings.node_width
            continue
        children_spans[node_id] = sum(spans[k] for k in kids) + settings.gap_x * (len(kids) - 1)
        spans[node_id] = max(settings.node_width, children_spans[node_id])

    starts: Dict[str, float] = {root.id: settings.start_x}
    ys: Dict[str, float] = {root.id: settings.top_offset}
    boxes: Dict[str, NodeBox] = {}
    for node_id in order:
        start_x = starts[node_id]
        if node_id in children_spans:
            x = max(start_x, start_x + (children_spans[node_id] - settings.node_width) / 2)
        else:
            x = start_x

        current_x = start_x
        for kid in children_of[node_id]:
            starts[kid] = current_x
            current_x += spans[kid] + settings.gap_x
            # Children start below the parent's estimated height
            ys[kid] = ys[node_id] + heights[node_id] + settings.gap_y

        boxes[node_id] = NodeBox(
            node_id=node_id,
            x=x,
            y=ys[node_id],
            width=settings.node_width,
            height=heights[node_id],
            span=spans[node_id],
            depth=depths[node_id],
        )

    return LayoutResult(boxes=boxes, edges=edges, bounds=calculate_bounds(boxes))


def calculate_bounds(boxes: Dict[str, NodeBox]) -> Bounds:
    bounds = Bounds()
    for box in boxes.values():
        bounds.width = max(bounds.width, box.x + box.width)
        bounds.height = max(bounds.height, box.y + box.height)
    return bounds


def canvas_size(layout: LayoutResult, margin: float = 50, min_width: float = 600, min_height: float = 400) -> Tuple[float, float]:
    """Drawing surface size for export adapters."""
    return (
        max(layout.bounds.width + margin, min_width),
        max(layout.bounds.height + margin, min_height),
    )
