"""
Structural edits of the dialog tree.

Every function takes the current node list and returns a new one; the input
list and the nodes in it are never modified. Requests are validated before
anything is built, so a raised error means nothing changed.
"""
import logging
from typing import List, Tuple
from phone_assistant.core import config
from phone_assistant.core.errors import InvalidOperationError, NodeNotFoundError
from phone_assistant.models.assistant import (
    AssistantNode, InputMode, KeyOption, NodeType, new_id,
)
from phone_assistant.services.node_repository import NodeRepository

logger = logging.getLogger(__name__)

def create_node(parent_id: str, order: int) -> AssistantNode:
    return AssistantNode(
        id=new_id(),
        parent_id=parent_id,
        type=NodeType.QUESTION,
        title=config.DEFAULT_NODE_TITLE,
        order=order,
    )

def add_child(nodes: List[AssistantNode], parent_id: str) -> Tuple[AssistantNode, List[AssistantNode]]:
    repo = NodeRepository(nodes)
    if not repo.find(parent_id):
        raise NodeNotFoundError(parent_id)

    node = create_node(parent_id, order=len(repo.children(parent_id)))
    logger.info(f"Adding node {node.id} under {parent_id} at position {node.order}")
    return node, repo.insert(node)

def insert_before(nodes: List[AssistantNode], target_id: str) -> Tuple[AssistantNode, List[AssistantNode]]:
    """
    Puts a new node between target and its parent.

    The new node takes over the target's parent and sibling position, the
    target moves below it, the parent's options that led to the target now
    lead to the new node, and the new node offers a single option back to
    the target.
    """
    repo = NodeRepository(nodes)
    target = repo.find(target_id)
    if not target:
        raise NodeNotFoundError(target_id)
    if target.parent_id is None:
        raise InvalidOperationError("Cannot insert before root")

    inserted = create_node(target.parent_id, order=target.order).model_copy(update={
        "has_options": True,
        "input_mode": InputMode.KEYPRESS,
        "options": [KeyOption(key="1", label=target.title, target_node_id=target.id)],
    })

    new_nodes = []
    for node in nodes:
        if node.id == target.id:
            node = node.model_copy(update={"parent_id": inserted.id})
        elif node.id == target.parent_id:
            node = node.model_copy(update={"options": [
                opt.model_copy(update={"target_node_id": inserted.id}) if opt.target_node_id == target.id else opt
                for opt in node.options
            ]})
        new_nodes.append(node)
    new_nodes.append(inserted)

    logger.info(f"Inserted node {inserted.id} before {target.id}")
    return inserted, new_nodes

def delete_subtree(nodes: List[AssistantNode], node_id: str) -> Tuple[List[str], List[AssistantNode]]:
    """
    Removes node_id and all of its descendants.

    Returns the removed ids (post-order, node_id last) and the remaining
    nodes. Options elsewhere that pointed into the subtree are left as they
    are; see strip_option_targets for the parent clean-up.
    """
    repo = NodeRepository(nodes)
    node = repo.find(node_id)
    if not node:
        raise InvalidOperationError(f"Cannot delete missing node {node_id}")
    if node.parent_id is None:
        raise InvalidOperationError("Cannot delete root")

    removed = repo.descendant_ids(node_id) + [node_id]
    logger.info(f"Deleting node {node_id} with {len(removed) - 1} descendant(s)")
    return removed, repo.remove(removed)

def strip_option_targets(nodes: List[AssistantNode], owner_id: str, target_id: str) -> List[AssistantNode]:
    """Drops the options of owner_id that lead to target_id."""
    return [
        n.model_copy(update={"options": [o for o in n.options if o.target_node_id != target_id]})
        if n.id == owner_id else n
        for n in nodes
    ]

def update_node(nodes: List[AssistantNode], updated: AssistantNode) -> List[AssistantNode]:
    repo = NodeRepository(nodes)
    current = repo.find(updated.id)
    if not current:
        raise NodeNotFoundError(updated.id)

    if updated.parent_id != current.parent_id:
        # Reparenting goes through insert_before; keep the tree shape as stored
        logger.warning(f"Ignoring parent change on node {updated.id}")
        updated = updated.model_copy(update={"parent_id": current.parent_id})

    return [updated if n.id == updated.id else n for n in nodes]
