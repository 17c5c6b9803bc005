"""
Console rendering of sync reports.
"""

from typing import Any, Dict, List

from .interpreter import ReferenceKind, SyncReport

REFERENCE_KIND_TEXT = {
    ReferenceKind.UNSPECIFIED: "(Unspecified or Unavailable)",
    ReferenceKind.PRIMARY: "(Primary Reference; e.g., GPS)",
    ReferenceKind.SECONDARY: "(Secondary Reference; e.g. via NTP or SNTP)",
}

SEPARATOR = "-" * 79


def _or_na(value) -> str:
    return "N/A" if value is None else str(value)


def render_report(report: SyncReport) -> str:
    """Multi-line, human readable block for one report."""
    lines = [
        f" Server: {report.server}/{report.server_address}",
        f" Stratum: {report.stratum} {REFERENCE_KIND_TEXT[report.reference_kind]}",
        f" leap={report.leap_indicator}, version={report.version}, precision={report.precision}",
        f" mode: {report.mode_name} ({report.mode_code})",
        f" poll: {report.poll_seconds} seconds (2 ** {report.poll_exponent})",
        f" rootdelay={report.root_delay_ms:.2f}, rootdispersion(ms): {report.root_dispersion_ms:.2f}",
        f" Reference Identifier:\t{report.reference_address}",
    ]
    for label, stamp in (
        ("Reference", report.reference_timestamp),
        ("Originate", report.originate_timestamp),
        ("Receive", report.receive_timestamp),
        ("Transmit", report.transmit_timestamp),
        ("Destination", report.destination_timestamp),
    ):
        lines.append(f" {label} Timestamp:\t{stamp.ntp}  {stamp.date}")

    lines.append(
        f" Roundtrip delay(ms)={_or_na(report.round_trip_delay_ms)}, "
        f"clock offset(ms)={_or_na(report.clock_offset_ms)}"
    )
    return "\n".join(lines)


def render_entries(entries: List[Dict[str, Any]], reports: Dict[int, SyncReport]) -> str:
    """Render aggregated entries, one block per worker.

    ``reports`` maps worker index to the SyncReport of successful workers.
    """
    blocks = []
    for entry in entries:
        index = entry['worker']
        header = f"OUTPUT FROM worker-{index} [{entry['status']}]"
        if index in reports:
            body = render_report(reports[index])
        else:
            error = entry['error']
            body = f" {error['kind']}: {error['message']}"
        blocks.append(f"{header}\n{body}\n{SEPARATOR}")
    return "\n".join(blocks)
