import os
import pytest
from datetime import datetime, timezone
from jinja2 import Environment, FileSystemLoader
from phone_assistant.models.assistant import (
    AnswerFormat, AssistantConfig, AssistantNode, KeyOption, NodeType,
)
from phone_assistant.services.export_service import (
    NODE_COLORS, NODE_TYPE_LABELS, ExportService, build_node_views, export_text, ps_escape, safe_filename,
)
from phone_assistant.services.layout_service import LayoutSettings, calculate_layout

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "phone_assistant", "templates")

@pytest.fixture
def export_service():
    return ExportService(Environment(loader=FileSystemLoader(TEMPLATES_DIR)))

def practice_config():
    stamp = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
    return AssistantConfig(id="cfg", praxis_name="Praxis (Dr. Weber)", created_at=stamp, updated_at=stamp, nodes=[
        AssistantNode(id="r", type=NodeType.GREETING, title="Begrüßung", announcement_text="Willkommen in der Praxis.",
                      has_options=True, options=[
                          KeyOption(key="1", label="Termin", target_node_id="t", ai_keywords=["termin"]),
                          KeyOption(key="2", label="Weiterleitung", target_node_id="f"),
                      ]),
        AssistantNode(id="f", parent_id="r", type=NodeType.FORWARD, title="Empfang", order=1,
                      forward_number="+49 30 1234", forward_fallback_text="Bitte später erneut anrufen.",
                      forward_retrieve_after_seconds=45),
        AssistantNode(id="t", parent_id="r", type=NodeType.QUESTION, title="Termin", order=0, tag="termine",
                      format=AnswerFormat.AUDIOFILE, audio_file_name="termin.mp3", is_important=True,
                      localized_titles={"en": "Appointment"},
                      localized_announcement_texts={"en": "Please say your date of birth."}),
        AssistantNode(id="e", parent_id="t", type=NodeType.END, title="Ende"),
    ])

def test_every_node_type_has_label_and_colors():
    assert set(NODE_TYPE_LABELS) == set(NodeType)
    assert set(NODE_COLORS) == set(NodeType)

def test_export_text_outline():
    text = export_text(practice_config())
    lines = text.split("\n")
    assert lines[0] == "TELEFONASSISTENT KONFIGURATION"
    assert "Praxis: Praxis (Dr. Weber)" in lines
    assert "Erstellt: 14.03.2025" in lines
    assert "# BEGRÜSSUNG: Begrüßung" in lines
    assert "  # FRAGE: Termin" in lines
    assert "    # SCHLUSS: Ende" in lines
    assert "  Format: Audiofile (termin.mp3)" in lines
    assert "  Tastendruck 1: Termin (Schlagworte: termin)" in lines
    assert "(bei Tastendruck: Termin)" in lines
    assert "  Weiterleitung an: +49 30 1234" in lines
    assert "  Rückholung nach: 45 s" in lines
    assert "  [EN] Appointment" in lines
    # Children follow sibling order, not list order
    assert text.index("# FRAGE: Termin") < text.index("# WEITERLEITUNG: Empfang")

def test_export_text_without_root():
    cfg = AssistantConfig(id="x", praxis_name="Leer", nodes=[AssistantNode(id="a", parent_id="b")])
    assert export_text(cfg).endswith("=" * 60 + "\n")

def test_node_views_rows_fit_in_boxes():
    settings = LayoutSettings()
    cfg = practice_config()
    cfg.nodes[0] = cfg.nodes[0].model_copy(update={"announcement_text": "Sehr lange Ansage " * 20})
    layout = calculate_layout(cfg.nodes, settings)
    for view in build_node_views(cfg, layout, settings):
        assert view["rows"][-1]["dy"] < view["box"].height

def test_node_views_option_badge_from_parent():
    cfg = practice_config()
    layout = calculate_layout(cfg.nodes)
    views = {v["id"]: v for v in build_node_views(cfg, layout, LayoutSettings())}
    assert views["t"]["badge"] == "Termin"
    assert views["f"]["badge"] == "Weiterleitung"
    assert views["r"]["badge"] is None
    assert views["e"]["badge"] is None
    assert views["t"]["audio"] is True

def test_render_svg(export_service):
    cfg = practice_config()
    svg = export_service.render_svg(cfg, calculate_layout(cfg.nodes))
    assert svg.startswith("<svg")
    assert svg.count("<g id=\"node-") == 4
    assert svg.count("marker-end") == 3

def test_render_svg_escapes_text(export_service):
    cfg = AssistantConfig(id="x", nodes=[AssistantNode(id="r", title="<b>Start</b>")])
    svg = export_service.render_svg(cfg, calculate_layout(cfg.nodes))
    assert "<b>" not in svg
    assert "&lt;b&gt;" in svg

def test_render_svg_empty_layout(export_service):
    cfg = AssistantConfig(id="x", nodes=[])
    svg = export_service.render_svg(cfg, calculate_layout(cfg.nodes))
    assert 'width="600"' in svg
    assert "<g id" not in svg

def test_render_postscript(export_service):
    cfg = practice_config()
    ps = export_service.render_postscript(cfg, calculate_layout(cfg.nodes))
    assert ps.startswith("%!PS-Adobe-3.0")
    assert "Telefonassistent: Praxis \\(Dr. Weber\\)" in ps
    assert "Stand: 14.03.2025" in ps
    assert ps.count("roundbox") == 4 + 1
    assert ps.rstrip().endswith("%%EOF")

def test_ps_escape():
    assert ps_escape("a(b)c\\") == "a\\(b\\)c\\\\"
    assert ps_escape("→ 123") == "-> 123"
    assert ps_escape("Praxis\n(x) print\r\t") == "Praxis \\(x\\) print  "

def test_render_postscript_keeps_praxis_name_on_one_line(export_service):
    cfg = AssistantConfig(id="x", praxis_name="Praxis\n(INJECTED) print", nodes=[AssistantNode(id="r", title="Start")])
    ps = export_service.render_postscript(cfg, calculate_layout(cfg.nodes))
    lines = ps.split("\n")
    assert lines[1] == "%%Title: (Praxis \\(INJECTED\\) print)"
    assert not any(line.startswith("\\(INJECTED") for line in lines)

def test_safe_filename():
    assert safe_filename("Praxis Dr. Müller") == "Praxis_Dr__M_ller"
    assert safe_filename("   ") == "Praxis"

def test_export_text_deep_chain():
    depth = 2500
    nodes = [AssistantNode(id="n0", title="Start")] + [
        AssistantNode(id=f"n{i}", parent_id=f"n{i - 1}", title=f"Schritt {i}") for i in range(1, depth)
    ]
    text = export_text(AssistantConfig(id="deep", praxis_name="Tief", nodes=nodes))
    assert text.count("# FRAGE: ") == depth
    assert text.index("Schritt 1\n") < text.index(f"Schritt {depth - 1}\n")
