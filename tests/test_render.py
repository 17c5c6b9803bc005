"""
Tests for console rendering.
"""

from ntpburst.fanout.aggregator import aggregate
from ntpburst.fanout.worker import WorkerOutcome
from ntpburst.report.interpreter import interpret
from ntpburst.report.render import render_entries, render_report
from tests.conftest import make_record, no_lookup


def test_render_report(record):
    text = render_report(interpret(record, resolver=no_lookup))
    lines = text.splitlines()
    assert lines[0] == " Server: ntp.example.org/192.0.2.10"
    assert lines[1] == " Stratum: 2 (Secondary Reference; e.g. via NTP or SNTP)"
    assert " leap=0, version=3, precision=-23" in lines
    assert " mode: server (4)" in lines
    assert " poll: 64 seconds (2 ** 6)" in lines
    assert " rootdelay=15.30, rootdispersion(ms): 27.10" in lines
    assert " Reference Identifier:\t192.0.2.1" in lines
    assert lines[-1] == " Roundtrip delay(ms)=10, clock offset(ms)=0"
    assert sum(1 for line in lines if "Timestamp:" in line) == 5


def test_render_report_without_delay():
    report = interpret(make_record(transmit_timestamp=None), resolver=no_lookup)
    assert render_report(report).endswith("Roundtrip delay(ms)=N/A, clock offset(ms)=N/A")


def test_render_entries_mixes_reports_and_failures(record):
    report = interpret(record, resolver=no_lookup)
    outcomes = [
        WorkerOutcome.success(0, report),
        WorkerOutcome.failure(1, "timeout", "No response received"),
    ]
    text = render_entries(aggregate(outcomes), {0: report})
    assert "OUTPUT FROM worker-0 [ok]" in text
    assert "OUTPUT FROM worker-1 [failed]\n timeout: No response received" in text
    assert text.count("-" * 79) == 2
