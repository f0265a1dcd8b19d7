from pathlib import Path

import pytest

from subharvest.engine.exporter import LinkFileExporter
from subharvest.errors import ExportError
from subharvest.models import SubscriptionConfig


def test_link_file_exporter_writes_one_link_per_line(tmp_path: Path):
    path = tmp_path / "out" / "configs.txt"
    configs = [SubscriptionConfig(config_link="vless://a@h:1"), SubscriptionConfig(config_link="ss://b@h:2")]

    with LinkFileExporter(path) as exporter:
        assert exporter.export_many(configs) == 2
        exporter.flush()

    assert path.read_text(encoding="utf-8") == "vless://a@h:1\nss://b@h:2\n"


def test_link_file_exporter_overwrites_existing_file(tmp_path: Path):
    path = tmp_path / "configs.txt"
    path.write_text("stale\n", encoding="utf-8")

    with LinkFileExporter(path) as exporter:
        exporter.export(SubscriptionConfig(config_link="trojan://p@h:443"))

    assert path.read_text(encoding="utf-8") == "trojan://p@h:443\n"


def test_link_file_exporter_reports_unwritable_path(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ExportError):
        LinkFileExporter(blocker / "configs.txt")
