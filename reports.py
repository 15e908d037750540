"""
Report exporters: JSON, CSV, Markdown and PDF renderings of one analysis.
• render_*() returns the content • export_*() writes ip-analysis-<ip>-<millis>.<ext>
"""
from __future__ import annotations

import csv
import io
import json
import logging
import pathlib
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

log = logging.getLogger("reports")

NA = "N/A"
PDF_MAX_PORT_ROWS = 20
PDF_FOOTER = "IP OSINT Analyzer"


class ExportData(BaseModel):
    """Everything known about one address at export time."""

    model_config = ConfigDict(populate_by_name=True)

    ip: str
    timestamp: str
    ip_info: Optional[Dict[str, Any]] = Field(default=None, alias="ipInfo")
    threat_intel: Optional[Dict[str, Any]] = Field(default=None, alias="threatIntel")
    network_info: Optional[Dict[str, Any]] = Field(default=None, alias="networkInfo")
    port_info: Optional[Dict[str, Any]] = Field(default=None, alias="portInfo")


# ──────────────────────────────────────────────────────────────────────────────
# Shared helpers
# ──────────────────────────────────────────────────────────────────────────────

def _val(mapping: Optional[Dict[str, Any]], *names: str) -> str:
    """First non-empty value among *names*, as text, else N/A."""
    for name in names:
        value = (mapping or {}).get(name)
        if value not in (None, ""):
            return str(value)
    return NA


def _display_time(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    except ValueError:
        return timestamp


def _yes_no(flag: Any) -> str:
    return "Yes" if flag else "No"


def _basic_rows(info: Dict[str, Any], detailed: bool = False) -> List[List[str]]:
    rows = [
        ["Country", f"{_val(info, 'country')} ({_val(info, 'countryCode', 'country_code')})"],
        ["City", _val(info, "city")],
        ["Region", _val(info, "regionName")],
    ]
    if detailed:
        rows += [["Postal Code", _val(info, "zip")], ["Timezone", _val(info, "timezone")]]
    rows += [
        ["ISP", _val(info, "isp")],
        ["Organization", _val(info, "org")],
        ["AS", _val(info, "as")],
    ]
    if detailed:
        rows += [["Latitude", _val(info, "lat")], ["Longitude", _val(info, "lon")]]
    return rows


def _detections(threat: Dict[str, Any]) -> List[str]:
    return list(threat.get("detections") or [])


def _open_ports(port_info: Optional[Dict[str, Any]]) -> List[int]:
    return list(((port_info or {}).get("shodan") or {}).get("ports") or [])


def _file_name(data: ExportData, ext: str) -> str:
    # IPv6 colons are not valid in every filesystem
    safe_ip = data.ip.replace(":", "_")
    return f"ip-analysis-{safe_ip}-{int(time.time() * 1000)}.{ext}"


# ──────────────────────────────────────────────────────────────────────────────
# Renderers
# ──────────────────────────────────────────────────────────────────────────────

def render_json(data: ExportData) -> str:
    return json.dumps(data.model_dump(by_alias=True, exclude_none=True), indent=2)


def render_csv(data: ExportData) -> str:
    rows: List[List[str]] = [
        ["Field", "Value"],
        ["IP Address", data.ip],
        ["Analysis Date", data.timestamp],
        ["", ""],
        ["=== BASIC INFO ===", ""],
    ]
    if data.ip_info:
        rows += _basic_rows(data.ip_info)

    if data.threat_intel:
        threat = data.threat_intel
        rows += [
            ["", ""],
            ["=== THREAT INTELLIGENCE ===", ""],
            ["Threat Level", _val(threat, "threatLevel")],
            ["Is Malicious", _yes_no(threat.get("isMalicious"))],
            ["Score", str(threat.get("aggregatedScore") or 0)],
            ["Detections", "; ".join(_detections(threat)) or "None"],
        ]

    reverse = (data.network_info or {}).get("reverseDns")
    if reverse:
        rows += [
            ["", ""],
            ["=== NETWORK INFO ===", ""],
            ["Reverse DNS", ", ".join(reverse)],
        ]

    # newline="" semantics: let the csv module own line endings
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buf.getvalue()


def render_markdown(data: ExportData) -> str:
    out = [
        "# IP Analysis Report\n",
        f"**IP Address:** {data.ip}\n",
        f"**Generated:** {_display_time(data.timestamp)}\n",
        "---\n",
    ]

    if data.ip_info:
        out.append("## Basic Information\n")
        table = ["| Field | Value |", "|-------|-------|"]
        table += [f"| {k} | {v} |" for k, v in _basic_rows(data.ip_info)]
        out.append("\n".join(table) + "\n")

    if data.threat_intel:
        threat = data.threat_intel
        out.append("## Threat Intelligence\n")
        out.append("\n".join([
            "| Field | Value |",
            "|-------|-------|",
            f"| Threat Level | {_val(threat, 'threatLevel')} |",
            f"| Is Malicious | {_yes_no(threat.get('isMalicious'))} |",
            f"| Score | {threat.get('aggregatedScore') or 0}/100 |",
        ]) + "\n")
        detections = _detections(threat)
        if detections:
            out.append("### Detections\n")
            out.append("\n".join(f"- {d}" for d in detections) + "\n")

    if data.network_info:
        net = data.network_info
        out.append("## Network Information\n")
        if net.get("reverseDns"):
            out.append(f"**Reverse DNS:** {', '.join(net['reverseDns'])}\n")
        asn = net.get("asn")
        if asn:
            out.append("\n".join([
                "**ASN:**",
                f"- Number: {asn.get('number')}",
                f"- Name: {asn.get('name')}",
                f"- Country: {asn.get('country')}",
            ]) + "\n")

    ports = _open_ports(data.port_info)
    if ports:
        out.append("## Open Ports\n")
        out.append("\n".join(f"- Port {p}" for p in ports) + "\n")

    return "\n".join(out)


class _NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so the footer can show the page total."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_pages: List[dict] = []

    def showPage(self):
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_pages)
        for state in self._saved_pages:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        width, _ = self._pagesize
        self.setFont("Helvetica", 9)
        self.setFillColor(colors.grey)
        self.drawCentredString(width / 2, 10 * mm, f"Page {self._pageNumber} of {total} - {PDF_FOOTER}")


def _pdf_table(head: List[str], body: List[List[str]], colour: colors.Color) -> Table:
    table = Table([head] + body, hAlign="LEFT", colWidths=[50 * mm] + [120 * mm] * (len(head) - 1))
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colour),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]))
    return table


def render_pdf(data: ExportData) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"IP Analysis Report - {data.ip}")
    styles = getSampleStyleSheet()
    blue = colors.Color(33 / 255, 150 / 255, 243 / 255)
    red = colors.Color(244 / 255, 67 / 255, 54 / 255)
    green = colors.Color(76 / 255, 175 / 255, 80 / 255)
    purple = colors.Color(156 / 255, 39 / 255, 176 / 255)

    def heading(text: str, colour: colors.Color) -> Paragraph:
        style = styles["Heading2"].clone("section", textColor=colour)
        return Paragraph(text, style)

    story: List[Any] = [
        Paragraph("IP Analysis Report", styles["Title"]),
        Paragraph(f"Generated: {_display_time(data.timestamp)}", styles["Normal"]),
        Paragraph(f"<b>IP: {data.ip}</b>", styles["Heading3"]),
        Spacer(1, 4 * mm),
    ]

    if data.ip_info:
        story += [heading("Basic Information", blue),
                  _pdf_table(["Field", "Value"], _basic_rows(data.ip_info, detailed=True), blue),
                  Spacer(1, 4 * mm)]

    if data.threat_intel:
        threat = data.threat_intel
        body = [
            ["Threat Level", _val(threat, "threatLevel")],
            ["Is Malicious", _yes_no(threat.get("isMalicious"))],
            ["Aggregated Score", f"{threat.get('aggregatedScore') or 0}/100"],
            ["Detections", Paragraph("<br/>".join(_detections(threat)) or "None", styles["BodyText"])],
        ]
        story += [heading("Threat Intelligence", red), _pdf_table(["Field", "Value"], body, red),
                  Spacer(1, 4 * mm)]

    if data.network_info:
        net = data.network_info
        body = []
        if net.get("reverseDns"):
            body.append(["Reverse DNS", ", ".join(net["reverseDns"])])
        asn = net.get("asn")
        if asn:
            body += [
                ["ASN Number", _val(asn, "number")],
                ["ASN Name", _val(asn, "name")],
                ["ASN Country", _val(asn, "country")],
            ]
        if body:
            story += [heading("Network Information", green), _pdf_table(["Field", "Value"], body, green),
                      Spacer(1, 4 * mm)]

    ports = _open_ports(data.port_info)[:PDF_MAX_PORT_ROWS]
    if ports:
        story += [heading("Open Ports", purple), _pdf_table(["Port"], [[str(p)] for p in ports], purple)]

    doc.build(story, canvasmaker=_NumberedCanvas)
    return buffer.getvalue()


# ──────────────────────────────────────────────────────────────────────────────
# File writers
# ──────────────────────────────────────────────────────────────────────────────

def _write(data: ExportData, dest_dir: pathlib.Path | str, ext: str, content: str | bytes) -> pathlib.Path:
    dest = pathlib.Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    path = dest / _file_name(data, ext)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8", newline="")
    log.info("%s report written → %s", ext.upper(), path)
    return path


def export_json(data: ExportData, dest_dir: pathlib.Path | str = ".") -> pathlib.Path:
    return _write(data, dest_dir, "json", render_json(data))


def export_csv(data: ExportData, dest_dir: pathlib.Path | str = ".") -> pathlib.Path:
    return _write(data, dest_dir, "csv", render_csv(data))


def export_markdown(data: ExportData, dest_dir: pathlib.Path | str = ".") -> pathlib.Path:
    return _write(data, dest_dir, "md", render_markdown(data))


def export_pdf(data: ExportData, dest_dir: pathlib.Path | str = ".") -> pathlib.Path:
    return _write(data, dest_dir, "pdf", render_pdf(data))


WRITERS: Dict[str, Callable[[ExportData, pathlib.Path | str], pathlib.Path]] = {
    "json": export_json,
    "csv": export_csv,
    "md": export_markdown,
    "pdf": export_pdf,
}

__all__ = [
    "ExportData",
    "render_json",
    "render_csv",
    "render_markdown",
    "render_pdf",
    "export_json",
    "export_csv",
    "export_markdown",
    "export_pdf",
    "WRITERS",
]
