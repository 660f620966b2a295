import json
import pytest
from phone_assistant.core.errors import InvalidStructureError
from phone_assistant.models.assistant import AssistantConfig, AssistantNode, KeyOption
from phone_assistant.services.config_store import JsonConfigStore, MemoryConfigStore, parse_config

def sample_config():
    return AssistantConfig(id="cfg", praxis_name="Praxis Sonnenschein", nodes=[
        AssistantNode(id="r", title="Begrüßung", has_options=True,
                      options=[KeyOption(key="1", label="Termin", target_node_id="t", ai_keywords=["termin", "buchen"])]),
        AssistantNode(id="t", parent_id="r", title="Termin", localized_titles={"en": "Appointment"}),
    ])

def test_load_missing_file(tmp_path):
    store = JsonConfigStore(str(tmp_path / "nothing.json"))
    assert store.load() is None

def test_save_and_load(tmp_path):
    path = tmp_path / "data" / "config.json"
    store = JsonConfigStore(str(path))
    store.save(sample_config())

    assert path.exists()
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["praxisName"] == "Praxis Sonnenschein"
    assert raw["nodes"][0]["options"][0]["aiKeywords"] == ["termin", "buchen"]

    loaded = store.load()
    assert loaded == sample_config()

def test_load_unparsable_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonConfigStore(str(path)).load() is None

def test_load_file_with_invalid_encoding(tmp_path):
    path = tmp_path / "config.json"
    path.write_bytes(b'{"id": "\xff\xfe", "nodes": []}')
    assert JsonConfigStore(str(path)).load() is None

def test_load_structurally_invalid_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"praxisName": "x"}), encoding="utf-8")
    assert JsonConfigStore(str(path)).load() is None

def test_memory_store():
    store = MemoryConfigStore()
    assert store.load() is None
    store.save(sample_config())
    assert store.load().id == "cfg"

def test_parse_config_accepts_text_and_mapping():
    text = sample_config().to_json()
    assert parse_config(text) == sample_config()
    assert parse_config(json.loads(text)) == sample_config()

@pytest.mark.parametrize("payload", [
    "[]",
    "42",
    "not json",
    {"nodes": []},
    {"id": "", "nodes": []},
    {"id": "x"},
    {"id": "x", "nodes": {"a": {}}},
    {"id": "x", "nodes": [{"title": "no id"}]},
    {"id": "x", "nodes": [{"id": "n", "type": "menu"}]},
])
def test_parse_config_rejects(payload):
    with pytest.raises(InvalidStructureError):
        parse_config(payload)

def test_parse_config_legacy_document():
    legacy = {
        "id": "old",
        "praxisName": "Praxis Alt",
        "nodes": [
            {"id": "r", "parentId": None, "type": "greeting", "title": "Begrüßung",
             "ansageText": "Hallo", "format": "synthetic", "hasOptions": False, "options": [], "order": 0},
        ],
        "createdAt": "2024-03-01T10:00:00.000Z",
        "updatedAt": "2024-03-02T10:00:00.000Z",
    }
    config = parse_config(legacy)
    assert config.nodes[0].announcement_text == "Hallo"
    assert config.created_at.year == 2024
