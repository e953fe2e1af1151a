"""Output generation for JSON and HTML reports."""

import json
from pathlib import Path
from typing import Any, List, Optional, Sequence

from appraisal2json.models import ExtractedRecord, StrategyHealthReport, SummaryStats


class OutputGenerator:
    """Writes records, summaries and reports to an output directory."""

    def __init__(self, output_dir: str):
        """Initialize output generator.

        Args:
            output_dir: Output directory path
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _write_json(self, path: Path, payload: Any) -> Path:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        return path

    def write_records(self, records: Sequence[ExtractedRecord], name: str = "records") -> Path:
        """Serialize records as a JSON array.

        Args:
            records: Records to write
            name: File stem

        Returns:
            Path to generated JSON file
        """
        return self._write_json(
            self.output_dir / f"{name}.json",
            [r.model_dump(mode="json") for r in records],
        )

    def write_summary_json(self, summary: SummaryStats, name: str = "summary") -> Path:
        return self._write_json(self.output_dir / f"{name}.json", summary.model_dump(mode="json"))

    def write_health_report(self, report: StrategyHealthReport, name: str = "strategy_health") -> Path:
        return self._write_json(self.output_dir / f"{name}.json", report.model_dump(mode="json"))

    def generate_html_report(self, summary: SummaryStats, title: str = "סיכום השוואה", name: str = "summary") -> Path:
        """Generate an RTL HTML report with statistics and the preview table.

        Returns:
            Path to generated HTML file
        """
        output_path = self.output_dir / f"{name}.report.html"
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self._generate_html_content(summary, title))
        return output_path

    def _generate_html_content(self, summary: SummaryStats, title: str) -> str:
        fields: List[str] = list(summary.fields.keys())

        html = f"""<!DOCTYPE html>
<html lang="he" dir="rtl">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self._escape_html(title)}</title>
    <style>
        body {{
            font-family: Arial, sans-serif;
            margin: 20px;
            background-color: #f5f5f5;
            direction: rtl;
        }}
        .container {{
            max-width: 1200px;
            margin: 0 auto;
            background-color: white;
            padding: 30px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }}
        h1 {{
            color: #333;
            border-bottom: 3px solid #4CAF50;
            padding-bottom: 10px;
        }}
        h2 {{
            color: #555;
            margin-top: 30px;
            border-right: 4px solid #4CAF50;
            padding-right: 10px;
        }}
        .note {{
            color: #777;
            font-size: 0.9em;
        }}
        table {{
            width: 100%;
            border-collapse: collapse;
            margin: 15px 0;
        }}
        th, td {{
            border: 1px solid #ddd;
            padding: 8px;
            text-align: right;
        }}
        th {{
            background-color: #4CAF50;
            color: white;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{self._escape_html(title)}</h1>
        <p>נמצאו {summary.total} החלטות, מוצגות {summary.shown}.</p>
"""
        if fields:
            html += "        <h2>סטטיסטיקה</h2>\n        <table>\n"
            html += "            <tr><th>שדה</th><th>מספר ערכים</th><th>ממוצע</th><th>חציון</th>"
            html += "<th>מינימום</th><th>מקסימום</th><th>חריגים שהוסרו</th></tr>\n"
            for field in fields:
                stats = summary.fields[field]
                html += (
                    f"            <tr><td>{self._escape_html(field)}</td><td>{stats.count}</td>"
                    f"<td>{self._fmt(stats.mean)}</td><td>{self._fmt(stats.median)}</td>"
                    f"<td>{self._fmt(stats.min)}</td><td>{self._fmt(stats.max)}</td>"
                    f"<td>{stats.outliers_removed}</td></tr>\n"
                )
            html += "        </table>\n"
            html += "        <p class='note'>הסטטיסטיקה מחושבת על כל ההחלטות שנמצאו, לא רק על המוצגות.</p>\n"

        if summary.top_actors:
            html += "        <h2>שמאים מובילים</h2>\n        <ul>\n"
            for actor, count in summary.top_actors:
                html += f"            <li>{self._escape_html(actor)}: {count}</li>\n"
            html += "        </ul>\n"

        if summary.by_year:
            html += "        <h2>לפי שנה</h2>\n        <ul>\n"
            for year in sorted(summary.by_year, reverse=True):
                html += f"            <li>{self._escape_html(year)}: {summary.by_year[year]}</li>\n"
            html += "        </ul>\n"

        if summary.preview:
            html += "        <h2>החלטות</h2>\n        <table>\n"
            html += "            <tr><th>החלטה</th><th>שמאי</th><th>מיקום</th><th>שנה</th>"
            html += "".join(f"<th>{self._escape_html(f)}</th>" for f in fields)
            html += "<th>הקשר</th></tr>\n"
            for row in summary.preview:
                label = self._escape_html(row.title or row.decision_id)
                if row.url:
                    label = f'<a href="{self._escape_html(row.url)}">{label}</a>'
                html += (
                    f"            <tr><td>{label}</td><td>{self._escape_html(row.actor)}</td>"
                    f"<td>{self._escape_html(row.location)}</td><td>{self._escape_html(row.year)}</td>"
                )
                html += "".join(f"<td>{self._fmt(row.values.get(f))}</td>" for f in fields)
                html += f"<td>{self._escape_html(row.snippet)}</td></tr>\n"
            html += "        </table>\n"

        html += """    </div>
</body>
</html>
"""
        return html

    @staticmethod
    def _fmt(value: Optional[float]) -> str:
        return "-" if value is None else f"{value:.4g}"

    def _escape_html(self, text: Optional[str]) -> str:
        """Escape HTML special characters."""
        if not text:
            return ""
        return (text.replace("&", "&amp;")
                   .replace("<", "&lt;")
                   .replace(">", "&gt;")
                   .replace('"', "&quot;")
                   .replace("'", "&#x27;"))
