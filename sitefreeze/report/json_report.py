# sitefreeze/report/json_report.py

"""
JSON report for SiteFreeze.

Serializes a CrawlReport to a file.
"""
import json
from pathlib import Path

from sitefreeze.aggregator import CrawlReport


def render_json(report: CrawlReport, output_path: Path | str, pretty: bool = True) -> Path:
    """
    Save *report* as JSON at *output_path*.

    :param report: CrawlReport with the crawl results
    :param output_path: path of the JSON file
    :param pretty: indent the output
    :return: Path of the saved file

    Example:
    ```python
    from sitefreeze.report.json_report import render_json
    report_path = render_json(report, 'reports/crawl.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    data = {
        'destination': report.destination,
        'total': report.total,
        'statuses': report.statuses,
        'visits': report.visits,
    }

    with output.open('w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    return output
