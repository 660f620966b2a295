from phone_assistant.core import config

def test_config_values():
    assert config.ORIGIN is not None
    assert config.LOG_LEVEL == config.LOG_LEVEL.upper()
    assert config.CONFIG_FILE.endswith(".json")
    assert config.DEFAULT_PRAXIS_NAME
    assert config.DEFAULT_NODE_TITLE
