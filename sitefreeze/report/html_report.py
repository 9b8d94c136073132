"""sitefreeze.report.html_report: HTML crawl report rendered with Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sitefreeze.aggregator import CrawlReport

DEFAULT_TEMPLATES = Path(__file__).parent / "templates"


def render_html(
    report: CrawlReport,
    template_dir: Union[Path, str, None],
    output_path: Union[Path, str],
) -> Path:
    """Render the HTML report from a template and save it.

    Args:
        report: the CrawlReport.
        template_dir: directory holding ``report.html.j2``; the bundled
            template is used when None.
        output_path: path of the resulting HTML file.

    Returns:
        Path of the saved HTML file.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATES
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template("report.html.j2")

    context: dict[str, Any] = {
        "visits": report.visits,
        "saved": report.saved,
        "failed": report.failed,
        "statuses": report.statuses,
        "total": report.total,
        "destination": report.destination,
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
