"""Embed a report document into the static dashboard page."""

import json
from importlib import resources

from .models import ReportDocument

TEMPLATE_NAME = "template.html"
DATA_PLACEHOLDER = "/*__BLUEBOX_DATA__*/"
TITLE_PLACEHOLDER = "__BLUEBOX_TITLE__"

# Row caps applied by the page script; collected counts are not affected.
MAX_EVENT_ROWS = 2000
MAX_APP_ROWS = 3000


def load_template() -> str:
    return resources.files(__package__).joinpath(TEMPLATE_NAME).read_text(encoding="utf-8")


def embed_json(data: object) -> str:
    """Serialize *data* for an inline ``<script>`` block.

    ``</`` and ``<!--`` are escaped so the payload cannot close the
    surrounding script element; the result is still valid JSON.
    """
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return (
        text.replace("</", "<\\/")
        .replace("<!--", "<\\u0021--")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def _html_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def render(document: ReportDocument, template: str | None = None) -> str:
    """Return the self-contained HTML page for *document*."""
    page = template if template is not None else load_template()
    title = f"BlueBox - {document.metadata.machine_name}"
    return (
        page.replace(TITLE_PLACEHOLDER, _html_escape(title))
        .replace("__MAX_EVENT_ROWS__", str(MAX_EVENT_ROWS))
        .replace("__MAX_APP_ROWS__", str(MAX_APP_ROWS))
        .replace(DATA_PLACEHOLDER, embed_json(document.to_dict()))
    )
