from __future__ import annotations

from datetime import timezone

import pytest

from outage_herald.engine.adapters import (
    AWSAdapter,
    AzureAdapter,
    GCPAdapter,
    OracleAdapter,
    resolve_sources,
)
from outage_herald.engine.fetcher import FeedDocument
from outage_herald.errors import UnknownSourceError


def test_aws_items_with_same_dates_get_distinct_fingerprints(aws_document) -> None:
    adapter = AWSAdapter()
    batch = adapter.normalize(aws_document)
    assert len(batch.items) == 2
    assert batch.items[0].fingerprint != batch.items[1].fingerprint
    assert adapter.render(batch.items[0]) == (
        'AWS event at Tue, 02 Jan 2024 15:04:05 PST: "Increased API error rates" '
        "-- https://status.aws.amazon.com/#ec2-us-east-1_1704236645"
    )


def test_aws_honours_feed_ttl(aws_document) -> None:
    assert AWSAdapter().normalize(aws_document).next_interval_minutes == 5.0


@pytest.mark.parametrize("ttl", [None, "", "soon", "0", "-3"])
def test_aws_ignores_unusable_ttl(aws_document, ttl) -> None:
    aws_document.ttl = ttl
    assert AWSAdapter().normalize(aws_document).next_interval_minutes is None


def test_other_adapters_ignore_ttl(aws_document) -> None:
    assert OracleAdapter().normalize(aws_document).next_interval_minutes is None


def test_normalize_does_not_mutate_input(aws_document) -> None:
    before = [dict(item) for item in aws_document.items]
    AWSAdapter().normalize(aws_document)
    assert aws_document.items == before


def test_normalize_rejects_items_without_candidates() -> None:
    document = FeedDocument(
        url="https://example.com/feed",
        items=[{"title": "no ids at all"}, {"title": "ok", "guid": "g-1"}],
    )
    batch = OracleAdapter().normalize(document)
    assert [item.title for item in batch.items] == ["ok"]
    assert batch.rejected == [{"title": "no ids at all"}]


def test_azure_uses_link_when_nothing_else_is_present() -> None:
    document = FeedDocument(
        url="https://azure.status.microsoft/en-us/status/feed/",
        items=[
            {"title": "A", "link": "https://azure.example/a", "pub_date": None},
            {"title": "B", "link": "https://azure.example/b", "pub_date": None},
        ],
    )
    adapter = AzureAdapter()
    batch = adapter.normalize(document)
    assert len({item.fingerprint for item in batch.items}) == 2
    assert adapter.render(batch.items[0]) == 'Azure event at None: "A" -- https://azure.example/a'


def test_gcp_renders_localised_date() -> None:
    document = FeedDocument(
        url="https://status.cloud.google.com/en/feed.atom",
        items=[
            {
                "title": "Cloud SQL incident",
                "link": "https://status.cloud.google.com/incidents/abc",
                "pub_date": "2024-01-02T23:04:05+00:00",
                "id": "tag:status.cloud.google.com,2024:feed:abc",
            }
        ],
    )
    adapter = GCPAdapter(tz=timezone.utc)
    item = adapter.normalize(document).items[0]
    assert adapter.render(item) == (
        'GCP event at 1/2/2024, 11:04:05 PM: "Cloud SQL incident" '
        "-- https://status.cloud.google.com/incidents/abc"
    )


def test_gcp_render_accepts_rfc822_and_garbage_dates() -> None:
    adapter = GCPAdapter(tz=timezone.utc)
    document = FeedDocument(
        url="https://status.cloud.google.com/en/feed.atom",
        items=[
            {"title": "a", "link": "l", "pub_date": "Tue, 02 Jan 2024 00:30:00 GMT", "id": "1"},
            {"title": "b", "link": "l", "pub_date": "not a date", "id": "2"},
        ],
    )
    first, second = adapter.normalize(document).items
    assert "1/2/2024, 12:30:00 AM" in adapter.render(first)
    assert 'GCP event at not a date: "b"' in adapter.render(second)


def test_oracle_render() -> None:
    document = FeedDocument(
        url="https://ocistatus.oraclecloud.com/history.rss",
        items=[{"title": "Degraded", "pub_date": "Mon, 01 Jan 2024", "guid": "oci-1"}],
    )
    adapter = OracleAdapter()
    item = adapter.normalize(document).items[0]
    assert adapter.render(item) == 'Oracle Cloud event at Mon, 01 Jan 2024: "Degraded" -- oci-1'


def test_payload_carries_fingerprint(aws_document) -> None:
    item = AWSAdapter().normalize(aws_document).items[0]
    payload = item.payload()
    assert payload["fingerprint"] == item.fingerprint
    assert payload["title"] == "Increased API error rates"


def test_resolve_sources_builds_descriptors() -> None:
    descriptors = resolve_sources({"aws": "https://a.example/rss", "gcp": "https://g.example/atom"})
    assert [(d.source_id, type(d.adapter)) for d in descriptors] == [
        ("aws", AWSAdapter),
        ("gcp", GCPAdapter),
    ]


def test_resolve_sources_rejects_unknown_ids() -> None:
    with pytest.raises(UnknownSourceError) as excinfo:
        resolve_sources({"aws": "https://a.example/rss", "digitalocean": "https://d.example/rss"})
    assert excinfo.value.source_id == "digitalocean"
