from __future__ import annotations

"""
Sankey HTML Report Writer.

Renders an AnalysisResult as a standalone HTML page: a capacity table
followed by a Google Charts Sankey diagram of the storage edges.
"""

import html
import json
import logging
import os
from datetime import datetime
from string import Template
from typing import List, Optional

from storage_visualizer.domain.constants import REPORT_FILENAME_FORMAT
from storage_visualizer.domain.storage_models import AnalysisResult
from storage_visualizer.infra.fs import safe_mkdir

logger = logging.getLogger(__name__)

_PAGE_TEMPLATE = Template("""<html>
<head>
<meta charset="utf-8">
<title>Storage Report: $target</title>
<script type="text/javascript" src="https://www.gstatic.com/charts/loader.js"></script>
<style>
  td { font-family: sans-serif; font-size: 8pt; }
  .bigger { font-family: sans-serif; font-size: 10pt; font-weight: bold; }
</style>
</head>
<body>
<div class="table">
  <div class="bigger">Storage Report</div>
  <table>
    <tr><td style="text-align:right">Target:</td><td>$target</td></tr>
    <tr><td style="text-align:right">Volume:</td><td>$volume</td></tr>
    <tr><td style="text-align:right">Disk Capacity:</td><td>$capacity $unit</td></tr>
    <tr><td style="text-align:right">Disk Used:</td><td>$used $unit</td></tr>
    <tr><td style="text-align:right">Free Space:</td><td>$available $unit</td></tr>
  </table>
</div>
<div id="sankey_multiple" style="width: 1000px; height: ${height}px;"></div>
<script type="text/javascript">
  google.charts.load('current', {packages: ['sankey']});
  google.charts.setOnLoadCallback(drawChart);
  function drawChart() {
    var data = new google.visualization.DataTable();
    data.addColumn('string', 'From');
    data.addColumn('string', 'To');
    data.addColumn('number', 'Weight');
    data.addRows($rows);
    var options = {
      width: 1000,
      sankey: {
        iterations: 32,
        node: { label: { fontName: 'Arial', fontSize: 10, color: '#871b47', bold: false, italic: true } }
      }
    };
    var chart = new google.visualization.Sankey(document.getElementById('sankey_multiple'));
    chart.draw(data, options);
  }
</script>
</body>
</html>
""")


def format_chart_rows(result: AnalysisResult) -> str:
    """
    Serialize the edges as a JavaScript array literal of [from, to, weight].

    JSON encoding escapes quotes in labels; '</' is escaped as well so a
    label cannot close the surrounding script element.
    """
    rows: List[list] = [[e.source, e.destination, e.weight] for e in result.edges]
    return json.dumps(rows, ensure_ascii=False, indent=1).replace("</", "<\\/")


def render_report(result: AnalysisResult) -> str:
    """Return the full HTML page for a successful analysis."""
    if not result.ok:
        raise ValueError(f"Cannot render a failed analysis: {result.error}")

    return _PAGE_TEMPLATE.substitute(
        target=html.escape(result.target_path),
        volume=html.escape(result.volume_root),
        capacity=_fmt(result.capacity),
        used=_fmt(result.used),
        available=_fmt(result.available),
        unit=html.escape(result.unit),
        height=max(300, 20 * len(result.edges)),
        rows=format_chart_rows(result),
    )


def write_storage_report(
        result: AnalysisResult,
        output_dir: str,
        *,
        now: Optional[datetime] = None,
) -> str:
    """
    Write the HTML report into output_dir under a timestamped name.

    Args:
        result: Successful analysis result.
        output_dir: Destination directory, created if missing.
        now: Timestamp used for the filename (defaults to the current time).

    Returns:
        str: Path of the written report.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    ok, err = safe_mkdir(output_dir)
    if not ok:
        raise OSError(f"Cannot create report directory '{output_dir}': {err}")

    filename = (now or datetime.now()).strftime(REPORT_FILENAME_FORMAT)
    path = os.path.join(output_dir, filename)

    logger.info(f"Writing html file {path}")
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_report(result))
    return path


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"
