# File: tests/test_reports.py
import csv
import json
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sitemap_scout.aggregator import LeafReport, RunReport, SiteReport, Summary
from sitemap_scout.crawler.models import NETWORK_ERROR, ProbeResult
from sitemap_scout.records import Category, classify_probe
from sitemap_scout.report import opportunity_filename, opportunity_from_csv, write_run_outputs
from sitemap_scout.report.csv_report import (
    RECORD_FIELDS,
    read_report_records,
    read_report_urls,
    render_csv,
    render_duplicates_csv,
)
from sitemap_scout.report.html_report import render_html
from sitemap_scout.report.json_report import render_json
from sitemap_scout.report.opportunity import build_opportunity, refresh_opportunity
from sitemap_scout.resolver import DuplicateReport, SitemapFailure

SITEMAP = "https://www.ex.com/sitemaps/pages.xml"
NOW = datetime(2024, 3, 5, 12, 0, 0, tzinfo=timezone.utc)


def make_leaf(sitemap: str = SITEMAP, with_issues: bool = True) -> LeafReport:
    records = [classify_probe(ProbeResult("https://www.ex.com/a", 200))]
    if with_issues:
        records += [
            replace(
                classify_probe(ProbeResult("https://www.ex.com/old", 301, "/a")),
                is_redundant=True,
                redundancy_target="https://www.ex.com/a",
            ),
            replace(
                classify_probe(ProbeResult("https://www.ex.com/gone", 404)),
                suggested_url="https://www.ex.com",
            ),
            classify_probe(ProbeResult("https://www.ex.com/down", None, error=NETWORK_ERROR)),
        ]
    duplicates = DuplicateReport(sitemap, {"https://www.ex.com/a": 2} if with_issues else {})
    summary = Summary.from_records(
        records, duplicates=duplicates.duplicate_count, elapsed_s=1.5
    )
    return LeafReport(sitemap, records, duplicates, summary)


def make_run(*leaves: LeafReport) -> RunReport:
    site = SiteReport(
        root_url="https://www.ex.com/sitemap.xml",
        site_id="site-1",
        leaves=list(leaves),
        failures=[SitemapFailure("https://www.ex.com/broken.xml", "HTTP 500", 1)],
        elapsed_s=2.0,
    )
    return RunReport(sites=[site], elapsed_s=2.5)


def test_summary_counts_and_percentages():
    summary = make_leaf().summary
    assert (summary.total, summary.ok, summary.redirect, summary.broken) == (4, 1, 1, 2)
    assert summary.redundant == 1
    assert summary.duplicates == 1
    assert summary.percent(summary.broken) == 50.0
    assert summary.as_dict()["percentages"]["not_ok"] == 75.0
    assert Summary().percent(0) == 0.0


def test_summary_combine():
    leaf = make_leaf()
    combined = Summary.combine([leaf.summary, leaf.summary])
    assert combined.total == 8
    assert combined.elapsed_s == 3.0
    assert Summary.combine([leaf.summary], elapsed_s=9).elapsed_s == 9


def test_render_csv(tmp_path):
    path = render_csv(make_leaf(), tmp_path / "out" / "pages.csv")
    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        assert reader.fieldnames == RECORD_FIELDS
        rows = list(reader)

    assert [r["url"] for r in rows] == [
        "https://www.ex.com/a",
        "https://www.ex.com/old",
        "https://www.ex.com/gone",
        "https://www.ex.com/down",
    ]
    assert rows[0]["isRedundantRedirect"] == "No"
    assert rows[1]["httpStatus"] == "301"
    assert rows[1]["redirectUrl"] == "/a"
    assert rows[1]["urlSuggested"] == "https://www.ex.com/a"
    assert rows[1]["isRedundantRedirect"] == "Yes"
    assert rows[1]["redundancyTarget"] == "https://www.ex.com/a"
    assert rows[2]["category"] == "Broken"
    assert rows[3]["httpStatus"] == "Network Error"


def test_read_report_urls(tmp_path):
    path = render_csv(make_leaf(), tmp_path / "pages.csv")
    assert len(read_report_urls(path)) == 4

    bad = tmp_path / "bad.csv"
    bad.write_text("link\nhttps://x.com\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_report_urls(bad)


def test_render_duplicates_csv(tmp_path):
    path = render_duplicates_csv(make_leaf().duplicates, tmp_path / "dups.csv")
    assert path.read_text(encoding="utf-8").splitlines() == [
        "url,occurrences",
        "https://www.ex.com/a,2",
    ]


def test_build_opportunity():
    doc = build_opportunity(make_leaf(), "site-1", now=NOW)
    header = doc["opportunity"]
    assert header["siteId"] == "site-1"
    assert header["type"] == "sitemap"
    assert header["sitemapUrl"] == SITEMAP
    assert header["createdAt"] == "2024-03-05T12:00:00.000Z"

    suggestions = doc["suggestions"]
    assert [s["data"]["pageUrl"] for s in suggestions] == [
        "https://www.ex.com/old",
        "https://www.ex.com/gone",
        "https://www.ex.com/down",
    ]
    assert [s["rank"] for s in suggestions] == [0, 1, 2]
    assert all(s["opportunityId"] == header["id"] for s in suggestions)
    assert all(s["type"] == "REDIRECT_UPDATE" for s in suggestions)

    redirect, gone, down = (s["data"] for s in suggestions)
    assert redirect["statusCode"] == 301
    assert redirect["urlsSuggested"] == "https://www.ex.com/a"
    assert gone["statusCode"] == 404
    assert gone["error"] is None
    assert gone["urlsSuggested"] == "https://www.ex.com"
    assert down["statusCode"] is None
    assert down["error"] == "Network Error"


def test_refresh_opportunity_keeps_identity():
    leaf = make_leaf()
    original = build_opportunity(leaf, "site-1", now=NOW)
    later = datetime(2024, 3, 6, tzinfo=timezone.utc)
    refreshed = refresh_opportunity(original, leaf, now=later)

    assert refreshed["opportunity"]["id"] == original["opportunity"]["id"]
    assert refreshed["opportunity"]["createdAt"] == original["opportunity"]["createdAt"]
    assert refreshed["opportunity"]["updatedAt"] == "2024-03-06T00:00:00.000Z"
    old_ids = {s["id"] for s in original["suggestions"]}
    assert not old_ids & {s["id"] for s in refreshed["suggestions"]}

    with pytest.raises(ValueError):
        refresh_opportunity({"opportunity": {}}, leaf)


def test_opportunity_filename():
    assert opportunity_filename(make_leaf(), NOW) == "opp-ex-com-sitemaps-pages-3_05_2024.json"


def test_write_run_outputs(tmp_path):
    report = make_run(make_leaf(), make_leaf("https://www.ex.com/clean.xml", with_issues=False))
    written = write_run_outputs(report, tmp_path, now=NOW)

    site_dir = tmp_path / "www_ex_com"
    assert sorted(p.name for p in written) == sorted(
        [
            "sitemaps-pages_2024-03-05T12-00-00.csv",
            "duplicates_sitemaps-pages_2024-03-05T12-00-00.csv",
            "opp-ex-com-sitemaps-pages-3_05_2024.json",
            "clean_2024-03-05T12-00-00.csv",
        ]
    )
    assert all(p.parent == site_dir for p in written)

    opp_path = site_dir / "opp-ex-com-sitemaps-pages-3_05_2024.json"
    first = json.loads(opp_path.read_text(encoding="utf-8"))
    assert first["opportunity"]["siteId"] == "site-1"

    # второй запуск в тот же день обновляет существующий документ
    write_run_outputs(report, tmp_path, now=NOW)
    second = json.loads(opp_path.read_text(encoding="utf-8"))
    assert second["opportunity"]["id"] == first["opportunity"]["id"]
    assert len(second["suggestions"]) == 3


def test_render_json(tmp_path):
    path = render_json(make_run(make_leaf()), tmp_path / "report.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["summary"]["total"] == 4
    assert data["summary"]["elapsed_s"] == 2.5
    site = data["sites"][0]
    assert site["failures"][0]["url"] == "https://www.ex.com/broken.xml"
    assert site["leaves"][0]["duplicates"] == {"https://www.ex.com/a": 2}
    assert site["leaves"][0]["records"][1]["isRedundantRedirect"] is True


def test_render_html(tmp_path):
    report = make_run(make_leaf())
    report.sites.append(
        SiteReport(root_url="https://bad.example/sitemap.xml", error="<script>alert(1)</script>")
    )
    path = render_html(report, None, tmp_path / "report.html")
    html = path.read_text(encoding="utf-8")
    assert "https://www.ex.com/gone" in html
    assert "https://www.ex.com/broken.xml" in html
    assert "&lt;script&gt;" in html
    assert "<script>alert(1)</script>" not in html


@pytest.mark.parametrize(
    "leftover",
    ['{"opportunity": {"id": "x"', '{"opportunity": {}}', "[1, 2, 3]"],
    ids=["truncated", "no-id", "foreign"],
)
def test_write_run_outputs_replaces_unreadable_opportunity(tmp_path, leftover):
    first = make_leaf()
    second = make_leaf("https://www.ex.com/sitemaps/posts.xml")
    site_dir = tmp_path / "www_ex_com"
    site_dir.mkdir()
    broken = site_dir / opportunity_filename(first, NOW)
    broken.write_text(leftover, encoding="utf-8")

    written = write_run_outputs(make_run(first, second), tmp_path, now=NOW)

    names = {p.name for p in written}
    assert "sitemaps-posts_2024-03-05T12-00-00.csv" in names
    assert "opp-ex-com-sitemaps-posts-3_05_2024.json" in names
    replaced = json.loads(broken.read_text(encoding="utf-8"))
    assert replaced["opportunity"]["id"]
    assert len(replaced["suggestions"]) == 3


def test_robots_columns_and_counts(tmp_path):
    leaf = make_leaf()
    leaf.records[0] = replace(leaf.records[0], no_index=True, no_follow=False)
    summary = Summary.from_records(leaf.records)
    assert (summary.noindex, summary.nofollow) == (1, 0)
    assert summary.as_dict()["percentages"]["noindex"] == 25.0

    path = render_csv(leaf, tmp_path / "pages.csv")
    with path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert (rows[0]["noIndex"], rows[0]["noFollow"]) == ("Yes", "No")
    # not checked: empty cells
    assert (rows[1]["noIndex"], rows[1]["noFollow"]) == ("", "")


def test_read_report_records(tmp_path):
    leaf = make_leaf()
    leaf.records[0] = replace(leaf.records[0], no_index=False, no_follow=True)
    records = read_report_records(render_csv(leaf, tmp_path / "pages.csv"))

    ok, redirect, gone, down = records
    assert (ok.category, ok.status, ok.no_follow, ok.no_index) == (Category.OK, 200, True, False)
    assert redirect.is_redundant
    assert redirect.redirect_target == "/a"
    assert redirect.suggested_url == "https://www.ex.com/a"
    assert (gone.category, gone.status, gone.suggested_url) == (Category.BROKEN, 404, "https://www.ex.com")
    assert (down.status, down.status_label, down.category) == (None, "Network Error", Category.BROKEN)
    assert down.no_index is None


def test_opportunity_from_csv(tmp_path):
    path = render_csv(make_leaf(), tmp_path / "pages.csv")
    doc = opportunity_from_csv(path, SITEMAP, "site-1", now=NOW)
    assert doc["opportunity"]["siteId"] == "site-1"
    assert doc["opportunity"]["createdAt"] == "2024-03-05T12:00:00.000Z"
    assert [s["data"]["pageUrl"] for s in doc["suggestions"]] == [
        "https://www.ex.com/old",
        "https://www.ex.com/gone",
        "https://www.ex.com/down",
    ]


def test_opportunity_from_csv_suggests_for_legacy_404s(tmp_path):
    path = tmp_path / "legacy.csv"
    path.write_text(
        "URL,Status,Redirect URL\n"
        "https://ex.com/shop/shoes,200,\n"
        "https://ex.com/shop/shoes/red-sneakers,404,\n"
        "https://ex.com/promo,302,/shop/shoes\n"
        "Total URLs Checked: 3,,\n"
        "Redirects: 1 (33.33%),,\n",
        encoding="utf-8",
    )
    doc = opportunity_from_csv(path, "https://ex.com/sitemap.xml")
    data = [s["data"] for s in doc["suggestions"]]
    assert [d["pageUrl"] for d in data] == [
        "https://ex.com/shop/shoes/red-sneakers",
        "https://ex.com/promo",
    ]
    assert data[0]["urlsSuggested"] == "https://ex.com/shop/shoes"
    assert data[1]["urlsSuggested"] == "https://ex.com/shop/shoes"
    assert data[1]["statusCode"] == 302


def test_opportunity_from_csv_without_issues(tmp_path):
    path = render_csv(make_leaf(with_issues=False), tmp_path / "clean.csv")
    assert opportunity_from_csv(path, SITEMAP) is None
