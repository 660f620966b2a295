import logging
from typing import Any, List, Optional
from phone_assistant.core import config
from phone_assistant.core.errors import NodeNotFoundError
from phone_assistant.models.assistant import (
    AnswerFormat, AssistantConfig, AssistantNode, NodeType, new_id, utcnow,
)
from phone_assistant.services import tree_mutations
from phone_assistant.services.config_store import ConfigStore, parse_config
from phone_assistant.services.layout_service import LayoutResult, LayoutSettings, calculate_layout
from phone_assistant.services.node_repository import NodeRepository

logger = logging.getLogger(__name__)

def create_default_config() -> AssistantConfig:
    root = AssistantNode(
        id=new_id(),
        parent_id=None,
        type=NodeType.GREETING,
        title=config.DEFAULT_GREETING_TITLE,
        announcement_text=config.DEFAULT_GREETING_TEXT,
        format=AnswerFormat.SYNTHETIC,
        order=0,
    )
    return AssistantConfig(id=new_id(), praxis_name=config.DEFAULT_PRAXIS_NAME, nodes=[root])


class AssistantService:
    """
    Owns the working configuration.

    Each change builds a new snapshot through tree_mutations, stamps
    updated_at, stores it and only then makes it current. A rejected
    request raises before anything is stored.
    """

    def __init__(self, store: ConfigStore, layout_settings: Optional[LayoutSettings] = None):
        self.store = store
        self.layout_settings = layout_settings or LayoutSettings()
        loaded = store.load()
        if loaded is None:
            logger.info("No stored configuration, starting with a fresh one")
            loaded = create_default_config()
            store.save(loaded)
        self.config = loaded

    @property
    def repository(self) -> NodeRepository:
        return NodeRepository(self.config.nodes)

    def _commit(self, **changes) -> AssistantConfig:
        changes["updated_at"] = utcnow()
        snapshot = self.config.model_copy(update=changes)
        self.store.save(snapshot)
        self.config = snapshot
        return snapshot

    def get_node(self, node_id: str) -> AssistantNode:
        node = self.repository.find(node_id)
        if not node:
            raise NodeNotFoundError(node_id)
        return node

    def get_path(self, node_id: str) -> List[AssistantNode]:
        self.get_node(node_id)
        return self.repository.path_to(node_id)

    def update_praxis_name(self, name: str) -> AssistantConfig:
        return self._commit(praxis_name=name)

    def add_child(self, parent_id: str) -> AssistantNode:
        node, nodes = tree_mutations.add_child(self.config.nodes, parent_id)
        self._commit(nodes=nodes)
        return node

    def insert_before(self, target_id: str) -> AssistantNode:
        node, nodes = tree_mutations.insert_before(self.config.nodes, target_id)
        self._commit(nodes=nodes)
        return node

    def update_node(self, node: AssistantNode) -> AssistantNode:
        nodes = tree_mutations.update_node(self.config.nodes, node)
        self._commit(nodes=nodes)
        return self.get_node(node.id)

    def delete_node(self, node_id: str) -> List[str]:
        """Deletes the subtree and returns the removed ids; the parent's options to it go too."""
        removed, nodes = tree_mutations.delete_subtree(self.config.nodes, node_id)
        parent_id = self.repository.find(node_id).parent_id
        nodes = tree_mutations.strip_option_targets(nodes, parent_id, node_id)
        self._commit(nodes=nodes)
        return removed

    def reset(self) -> AssistantConfig:
        fresh = create_default_config()
        self.store.save(fresh)
        self.config = fresh
        logger.info(f"Configuration reset to {fresh.id}")
        return fresh

    def import_config(self, payload: Any) -> AssistantConfig:
        imported = parse_config(payload)
        self.store.save(imported)
        self.config = imported
        logger.info(f"Imported configuration {imported.id} with {len(imported.nodes)} node(s)")
        return imported

    def export_json(self) -> str:
        return self.config.to_json()

    def layout(self) -> LayoutResult:
        return calculate_layout(self.config.nodes, self.layout_settings)
