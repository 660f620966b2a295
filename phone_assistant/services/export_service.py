import logging
import textwrap
from typing import Dict, List, Optional
from jinja2 import Environment
from phone_assistant.models.assistant import AnswerFormat, AssistantConfig, AssistantNode, NodeType
from phone_assistant.services.layout_service import LayoutResult, LayoutSettings, canvas_size
from phone_assistant.services.node_repository import NodeRepository

logger = logging.getLogger(__name__)

NODE_TYPE_LABELS: Dict[NodeType, str] = {
    NodeType.GREETING: "Begrüßung",
    NodeType.QUESTION: "Frage",
    NodeType.ACTION: "Aktion",
    NodeType.END: "Schluss",
    NodeType.FORWARD: "Weiterleitung",
}

# fill, stroke
NODE_COLORS: Dict[NodeType, tuple] = {
    NodeType.GREETING: ("#e0f2fe", "#0284c7"),
    NodeType.QUESTION: ("#ede9fe", "#7c3aed"),
    NodeType.ACTION: ("#dcfce7", "#16a34a"),
    NodeType.END: ("#fee2e2", "#dc2626"),
    NodeType.FORWARD: ("#fef3c7", "#d97706"),
}


def node_type_label(node_type: NodeType) -> str:
    return NODE_TYPE_LABELS[node_type]

def safe_filename(name: str) -> str:
    # Header-safe: ASCII letters and digits only
    return "".join([c if c.isascii() and c.isalnum() else "_" for c in name.strip()]) or "Praxis"

def format_date(value) -> str:
    return value.strftime("%d.%m.%Y")


def _node_lines(node: AssistantNode, depth: int) -> List[str]:
    indent = "  " * depth
    lines = [f"{indent}# {node_type_label(node.type).upper()}: {node.title}", ""]

    if node.format == AnswerFormat.AUDIOFILE and node.audio_file_name:
        lines.append(f"{indent}Format: Audiofile ({node.audio_file_name})")
    else:
        lines.append(f"{indent}Format: synthetisch")
    lines.append("")

    if node.announcement_text:
        lines.append(f"{indent}Ansage:")
        lines.extend(f"{indent}  {l}" for l in node.announcement_text.split("\n"))
        lines.append("")

    for lang in node.active_languages():
        title = node.localized_titles.get(lang, "")
        lines.append(f"{indent}[{lang.upper()}] {title}".rstrip())
        text = node.localized_announcement_texts.get(lang)
        if text:
            lines.extend(f"{indent}  {l}" for l in text.split("\n"))
        lines.append("")

    if node.is_important:
        lines.append(f"{indent}WICHTIG")
    lines.append(f"{indent}Tag/Kanal: {node.tag or 'Nein'}")
    lines.append(f"{indent}Auswahl mit Optionen: {'Ja' if node.has_options else 'Nein'}")

    if node.has_options and node.options:
        lines.append("")
        lines.append(f"{indent}Optionen:")
        for opt in node.options:
            entry = f"{indent}  Tastendruck {opt.key}: {opt.label}"
            if opt.ai_keywords:
                entry += f" (Schlagworte: {', '.join(opt.ai_keywords)})"
            lines.append(entry)

    if node.type == NodeType.FORWARD and node.forward_number:
        lines.append("")
        lines.append(f"{indent}Weiterleitung an: {node.forward_number}")
        if node.forward_fallback_text:
            lines.append(f"{indent}Fallback: {node.forward_fallback_text}")
        if node.forward_retrieve_after_seconds:
            lines.append(f"{indent}Rückholung nach: {node.forward_retrieve_after_seconds} s")

    lines.extend(["", f"{indent}---", ""])
    return lines

def export_text(config: AssistantConfig) -> str:
    """Indented plain-text outline of the whole dialog, root first."""
    lines = [
        "TELEFONASSISTENT KONFIGURATION",
        f"Praxis: {config.praxis_name}",
        f"Erstellt: {format_date(config.created_at)}",
        f"Aktualisiert: {format_date(config.updated_at)}",
        "",
        "=" * 60,
        "",
    ]
    repo = NodeRepository(config.nodes)
    root = repo.root()
    if not root:
        return "\n".join(lines)

    # Depth-first on an explicit stack; each entry carries the option label that leads to it
    stack = [(root, 0, None)]
    seen = {root.id}
    while stack:
        node, depth, option_label = stack.pop()
        if option_label:
            parent_indent = "  " * (depth - 1)
            lines.append(f"{parent_indent}(bei Tastendruck: {option_label})")
            lines.append("")
        lines.extend(_node_lines(node, depth))

        kids = [c for c in repo.children(node.id) if c.id not in seen]
        seen.update(c.id for c in kids)
        for child in reversed(kids):
            label = next((o.label for o in node.options if o.target_node_id == child.id), None)
            stack.append((child, depth + 1, label))
    return "\n".join(lines)


def _wrap(text: Optional[str], settings: LayoutSettings) -> List[str]:
    # Never draw more lines than the layout reserved for this text
    if not text:
        return []
    budget = -(-len(text) // settings.chars_per_line)
    lines = textwrap.wrap(text, width=settings.chars_per_line) or [text]
    if len(lines) > budget:
        lines = lines[:budget]
        lines[-1] = lines[-1][: settings.chars_per_line - 1] + "…"
    return lines

def build_node_views(config: AssistantConfig, layout: LayoutResult, settings: LayoutSettings) -> List[dict]:
    """
    Drawing instructions shared by the SVG and PostScript templates.

    Text rows advance by the same increments the height estimate uses, so
    every row fits inside its box.
    """
    repo = NodeRepository(config.nodes)
    views = []
    for node_id, box in layout.boxes.items():
        node = repo.find(node_id)
        parent = repo.find(node.parent_id) if node.parent_id else None
        badge = None
        if parent:
            badge = next((o.label for o in parent.options if o.target_node_id == node.id), None)

        rows = []
        cursor = 18.0
        rows.append({"text": node_type_label(node.type).upper(), "dy": cursor, "style": "label"})
        cursor += 18
        rows.append({"text": node.title, "dy": cursor, "style": "title"})
        cursor = settings.base_height - 4

        for line in _wrap(node.announcement_text, settings):
            rows.append({"text": line, "dy": cursor, "style": "text"})
            cursor += settings.line_height

        for lang in node.active_languages():
            cursor += settings.title_line_height - settings.line_height
            rows.append({"text": f"[{lang.upper()}] {node.localized_titles.get(lang, '')}".rstrip(), "dy": cursor, "style": "lang"})
            cursor += settings.line_height
            for line in _wrap(node.localized_announcement_texts.get(lang), settings):
                rows.append({"text": line, "dy": cursor, "style": "text"})
                cursor += settings.line_height

        badges = []
        if node.is_important:
            badges.append("Wichtig")
        if node.tag:
            badges.append(f"Tag: {node.tag}")
        if node.type == NodeType.FORWARD and node.forward_number:
            badges.append(f"→ {node.forward_number}")
        has_options = node.has_options and bool(node.options)
        if has_options:
            badges.append(f"{len(node.options)} Optionen")
        if badges:
            cursor += settings.badge_row_height - settings.line_height
            rows.append({"text": "  ·  ".join(badges), "dy": cursor, "style": "badge"})
            cursor += settings.line_height
        if has_options:
            for opt in node.options:
                cursor += settings.option_line_height - settings.line_height
                rows.append({"text": f"{opt.key or '–'}: {opt.label}", "dy": cursor, "style": "option"})
                cursor += settings.line_height

        fill, stroke = NODE_COLORS[node.type]
        views.append({
            "id": node.id,
            "box": box,
            "fill": fill,
            "stroke": stroke,
            "important": node.is_important,
            "badge": badge,
            "audio": node.format == AnswerFormat.AUDIOFILE,
            "rows": rows,
        })
    return views

def build_edge_paths(layout: LayoutResult) -> List[dict]:
    edges = []
    for parent_id, child_id in layout.edges:
        parent, child = layout.boxes[parent_id], layout.boxes[child_id]
        px = parent.x + parent.width / 2
        py = parent.y + parent.height
        cx = child.x + child.width / 2
        cy = child.y
        mid = (py + cy) / 2
        edges.append({"x1": px, "y1": py, "mx": mid, "x2": cx, "y2": cy})
    return edges


# Glyphs missing from ISO Latin-1
PS_REPLACEMENTS = {"→": "->", "–": "-", "…": "...", "„": "\"", "“": "\""}

def ps_escape(value: str) -> str:
    value = str(value)
    for glyph, ascii_text in PS_REPLACEMENTS.items():
        value = value.replace(glyph, ascii_text)
    # No control characters: a line break would end a DSC comment
    value = "".join(" " if ord(c) < 32 or c == "\x7f" else c for c in value)
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


class ExportService:
    def __init__(self, jinja_env: Environment, settings: Optional[LayoutSettings] = None):
        self.jinja_env = jinja_env
        self.jinja_env.filters.setdefault("ps", ps_escape)
        self.settings = settings or LayoutSettings()

    def _context(self, config: AssistantConfig, layout: LayoutResult) -> dict:
        width, height = canvas_size(layout)
        return {
            "config": config,
            "width": width,
            "height": height,
            "nodes": build_node_views(config, layout, self.settings),
            "edges": build_edge_paths(layout),
            "updated": format_date(config.updated_at),
        }

    def export_text(self, config: AssistantConfig) -> str:
        return export_text(config)

    def render_svg(self, config: AssistantConfig, layout: LayoutResult) -> str:
        logger.debug(f"Rendering SVG flowchart with {len(layout.boxes)} node(s)")
        template = self.jinja_env.get_template("flowchart.svg")
        return template.render(**self._context(config, layout))

    def render_postscript(self, config: AssistantConfig, layout: LayoutResult) -> str:
        template = self.jinja_env.get_template("flowchart.ps")
        return template.render(**self._context(config, layout))
