# camfleet/services/report_service.py
"""
Executive HTML report.

The summary text uses a small markup:
  **bold**   *italic*   ##highlight##   lines starting with "- " become a list
Values are HTML-escaped before the markup is applied, so device and channel
names can never inject tags into the document.
"""

import os
import re
from datetime import datetime
from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape
from camfleet.schemas.device import DeviceOut
from camfleet.schemas.stats import CameraStats, SummaryParts
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")
REPORT_TEMPLATE = "report.html"

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_HIGHLIGHT = re.compile(r"##(.*?)##")
_LIST_BLOCK = re.compile(r"^- (.*(?:\n- .*)*)", re.MULTILINE)

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def build_summary_text(parts: SummaryParts, conclusion: Optional[str] = None) -> str:
    """Assemble the summary; `conclusion` overrides the default one when given."""
    conclusion = parts.conclusion if conclusion is None else conclusion
    lines = [
        parts.title, "",
        parts.greeting, "",
        parts.intro, "",
        parts.overview_title, *parts.overview_items, "",
        parts.problem_intro, "",
        parts.incident_details_title, parts.incident_details, "",
        parts.conclusion_title if (parts.conclusion_title and conclusion) else None,
        conclusion, "", "",
        parts.signature,
    ]
    return "\n".join(line for line in lines if line)


def _list_block(match: re.Match) -> str:
    items = "".join(f"<li>{item[2:].strip() if item.startswith('- ') else item.strip()}</li>"
                    for item in match.group(0).split("\n"))
    return f"<ul>{items}</ul>"


def format_summary_html(text: str) -> Markup:
    html = str(escape(text))
    html = _BOLD.sub(r"<strong>\1</strong>", html)
    html = _ITALIC.sub(r"<em>\1</em>", html)
    html = _HIGHLIGHT.sub(r'<strong style="color: #dc3545;">\1</strong>', html)
    html = _LIST_BLOCK.sub(_list_block, html)
    html = html.replace("\n", "<br />")
    return Markup(html)


def render_report(devices: list[DeviceOut], stats: CameraStats, conclusion: Optional[str] = None,
                  generated_at: Optional[datetime] = None) -> str:
    generated_at = generated_at or datetime.now()
    summary_html = format_summary_html(build_summary_text(stats.summary_parts, conclusion))
    template = _env.get_template(REPORT_TEMPLATE)
    html = template.render(
        totals=stats.totals,
        device_stats=stats.device_stats,
        problems=stats.problem_channels,
        summary_html=summary_html,
        generated_date=generated_at.strftime("%d/%m/%Y"),
        generated_time=generated_at.strftime("%H:%M:%S"),
    )
    logger.info(f"[REPORT] Rendered report: {len(devices)} devices, "
                f"{len(stats.problem_channels)} problem channels")
    return html
