"""Tests for the probe catalog (probes.yaml)."""

from __future__ import annotations

from pathlib import Path

import pytest

from prober.checks import DnsProber, MxRecord, WebProber
from prober.checks.dns import DEFAULT_DNS_INTERVAL
from prober.config import Settings
from prober.registry import ProbeCatalog

CATALOG = """\
probes:
  - name: homepage
    type: web
    target: https://example.com/
    want: Welcome
  - name: api
    target: https://api.example.com/health
    method: HEAD
    expected_status: 204
    interval_seconds: 15
    timeout_seconds: 5
    failure_penalty: 25
    description: API liveness
  - name: apex
    type: dns
    target: example.com
    a_records: [93.184.216.34]
"""


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "probes.yaml"
    path.write_text(CATALOG)
    return path


class TestProbeCatalog:
    def test_load(self, catalog_file: Path) -> None:
        defs = ProbeCatalog(catalog_file).load()
        assert [d.name for d in defs] == ["homepage", "api", "apex"]
        api = defs[1]
        assert api.type == "web"
        assert api.method == "HEAD"
        assert api.expected_status == 204
        assert api.interval_seconds == 15.0
        assert defs[2].a_records == ["93.184.216.34"]

    def test_get(self, catalog_file: Path) -> None:
        catalog = ProbeCatalog(catalog_file)
        assert catalog.get("apex").type == "dns"
        assert catalog.get("missing") is None

    def test_missing_file(self, tmp_path: Path) -> None:
        assert ProbeCatalog(tmp_path / "nope.yaml").load() == []

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "probes.yaml"
        path.write_text("probes: [unclosed")
        assert ProbeCatalog(path).load() == []

    def test_malformed_entries_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "probes.yaml"
        path.write_text(
            "probes:\n"
            "  - name: no-target\n"
            "  - name: bad-type\n    type: ftp\n    target: ftp://x\n"
            "  - just a string\n"
            "  - name: ok\n    target: https://ok.example.com\n"
            "  - name: ok\n    target: https://dup.example.com\n"
        )
        defs = ProbeCatalog(path).load()
        assert [d.name for d in defs] == ["ok"]
        assert defs[0].target == "https://ok.example.com"

    def test_name_defaults_to_target(self, tmp_path: Path) -> None:
        path = tmp_path / "probes.yaml"
        path.write_text("probes:\n  - target: https://example.com\n")
        assert ProbeCatalog(path).load()[0].name == "https://example.com"

    def test_dns_record_types(self, tmp_path: Path) -> None:
        path = tmp_path / "probes.yaml"
        path.write_text(
            "probes:\n"
            "  - name: mail\n"
            "    type: dns\n"
            "    target: example.com\n"
            "    mx:\n"
            "      - {host: mx2.example.com, pref: 20}\n"
            "      - {host: mx1.example.com, pref: 10}\n"
            "    ns: [a.iana-servers.net]\n"
            "    txt: ['v=spf1 -all']\n"
        )
        catalog = ProbeCatalog(path)
        d = catalog.load()[0]
        assert d.mx == [MxRecord(20, "mx2.example.com"), MxRecord(10, "mx1.example.com")]
        assert d.ns == ["a.iana-servers.net"]
        assert d.txt == ["v=spf1 -all"]

        prober = catalog.build(Settings())[0].prober
        assert prober.want_mx == [MxRecord(10, "mx1.example.com"), MxRecord(20, "mx2.example.com")]
        assert prober.want_ns == ["a.iana-servers.net"]
        assert prober.want_txt == ["v=spf1 -all"]

    def test_reload(self, catalog_file: Path) -> None:
        catalog = ProbeCatalog(catalog_file)
        assert len(catalog.load()) == 3
        catalog_file.write_text("probes: []\n")
        assert len(catalog.load()) == 3
        assert catalog.load(force=True) == []


class TestBuild:
    def test_build_probes(self, catalog_file: Path) -> None:
        s = Settings(probe_interval=30, record_capacity=50)
        probes = ProbeCatalog(catalog_file).build(s)
        by_name = {p.name: p for p in probes}
        assert set(by_name) == {"WebProber_homepage", "WebProber_api", "DnsProber_apex"}

        home = by_name["WebProber_homepage"]
        assert isinstance(home.prober, WebProber)
        assert home.prober.want_in_response == "Welcome"
        assert home.interval == 30
        assert home.timeout == 30
        assert home.records.capacity == 50

        api = by_name["WebProber_api"]
        assert api.interval == 15
        assert api.timeout == 5
        assert api.accumulator.increment == 25
        assert api.description == "API liveness"

        apex = by_name["DnsProber_apex"]
        assert isinstance(apex.prober, DnsProber)
        assert apex.interval == DEFAULT_DNS_INTERVAL

    def test_probes_disabled(self, catalog_file: Path) -> None:
        assert ProbeCatalog(catalog_file).build(Settings(probes_disabled=True)) == []
