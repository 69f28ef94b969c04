"""Tests for the command line entry point."""

import json

import pytest

import feedhub.__main__ as cli
from feedhub.config import reload_settings
from feedhub.crawler.registry import CrawlerRegistry
from tests.factories import FakeCrawler, make_item


@pytest.fixture
def fake_crawler(tmp_path, monkeypatch) -> FakeCrawler:
    monkeypatch.setenv("DB_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    reload_settings()
    crawler = FakeCrawler([make_item("v1"), make_item("v2")])
    monkeypatch.setattr(cli, "build_registry", lambda settings: CrawlerRegistry([crawler]))
    yield crawler
    reload_settings()


def test_source_and_query_are_exclusive():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["fetch", "--platform", "youtube", "--source-id", "a", "--query", "b"])


def test_fetch_then_list_jobs(fake_crawler, capsys):
    assert cli.main(["fetch", "--platform", "youtube", "--source-id", "@kan11", "--max-items", "5"]) == 0

    result = json.loads(capsys.readouterr().out)
    assert result["itemsFetched"] == 2
    assert result["newItems"] == 2
    assert fake_crawler.closed

    assert cli.main(["jobs", "--platform", "youtube"]) == 0
    listing = capsys.readouterr().out
    assert "@kan11" in listing
    assert "completed" in listing


def test_unknown_platform_exit_code(fake_crawler):
    assert cli.main(["fetch", "--platform", "myspace", "--source-id", "a"]) == 2


def test_check(fake_crawler, capsys):
    assert cli.main(["check", "--platform", "youtube"]) == 0
    assert capsys.readouterr().out.strip() == "youtube: ok"
