"""
Ingestion layer tests: parsers, allow-list, fetcher and incident normalizer.

HTTP is served by httpx.MockTransport; nothing touches the network.
"""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from truth_tracker.errors import HostNotAllowed, SourceFetchError
from truth_tracker.ingestion import (
    ApiArrayParser, ContentFetcher, FeedItemParser, HtmlTextParser, IncidentNormalizer,
    categorize_incident, get_parser, normalize_date,
)
from truth_tracker.ingestion.allowlist import is_host_allowed, parse_http_url
from truth_tracker.ingestion.parsers import clean_text
from truth_tracker.schemas import FetchType, IncidentCategory, Source


def rss(*items):
    body = "".join(
        f"<item><title>{title}</title><link>https://thewire.in/{i}</link>"
        f"<description><![CDATA[{description}]]></description>"
        f"<pubDate>Tue, 05 Mar 2024 10:30:00 +0530</pubDate></item>"
        for i, (title, description) in enumerate(items)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>Feed</title>{body}</channel></rss>'
    )


THREE_BLOCK_FEED = rss(
    ("Budget session", "The government announced a reform of the national healthcare budget for rural districts."),
    ("Schools plan", "Minister pledges 500 new schools across the state before the next election cycle begins."),
    ("Brief", "Minister speaks."),
)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every requested URL."""

    def __init__(self, handler):
        self.requested = []

        def _handler(request: httpx.Request):
            self.requested.append(str(request.url))
            return handler(request)

        super().__init__(_handler)


def feed_source(name="The Wire Politics", url="https://thewire.in/politics/feed", active=True):
    return Source(name=name, fetch_type=FetchType.FEED, url=url, active=active)


# ════════════════════════════════════════════════════════════════════
# Parsers
# ════════════════════════════════════════════════════════════════════

def test_clean_text_strips_tags_and_entities():
    assert clean_text("<p>Rs 500&nbsp;crore &amp; more</p>\n\n <b>now</b>") == "Rs 500 crore & more now"


def test_feed_parser_reads_cdata_descriptions():
    records = FeedItemParser().parse(THREE_BLOCK_FEED, "Wire")
    assert [r.title for r in records] == ["Budget session", "Schools plan", "Brief"]
    assert records[1].description.startswith("Minister pledges 500 new schools")
    assert records[0].link == "https://thewire.in/0"
    assert records[0].source_name == "Wire"
    assert records[0].published_date


def test_feed_parser_rejects_garbage():
    with pytest.raises(ValueError):
        FeedItemParser().parse("this is not a feed <<<", "Wire")


def test_api_parser_joins_text_fields():
    body = json.dumps([
        {"title": "Scheme launched", "description": "Ministry launches scheme", "url": "https://x.in/1",
         "publishedAt": "2024-03-05T10:00:00Z"},
        "not an object",
    ])
    records = ApiArrayParser().parse(body, "API")
    assert len(records) == 1
    assert records[0].content == "Scheme launched Ministry launches scheme"
    assert records[0].link == "https://x.in/1"
    assert records[0].published_date == "2024-03-05T10:00:00Z"


def test_api_parser_requires_array():
    with pytest.raises(ValueError):
        ApiArrayParser().parse('{"items": []}', "API")
    with pytest.raises(ValueError):
        ApiArrayParser().parse("not json", "API")


def test_html_parser_drops_scripts_and_splits_sentences():
    page = "<html><script>var promise = 1;</script><body><p>First part. Second part!</p></body></html>"
    segments = [r.content for r in HtmlTextParser().parse(page, "Page")]
    assert segments == ["First part", "Second part"]


def test_get_parser_by_fetch_type():
    assert isinstance(get_parser(FetchType.JSON), ApiArrayParser)
    assert isinstance(get_parser("scrape"), HtmlTextParser)
    with pytest.raises(ValueError):
        get_parser("carrier-pigeon")


# ════════════════════════════════════════════════════════════════════
# Allow-list
# ════════════════════════════════════════════════════════════════════

def test_allow_list_exact_and_subdomain():
    assert is_host_allowed("thehindu.com")
    assert is_host_allowed("www.thehindu.com")
    assert not is_host_allowed("evil.example.com")
    assert not is_host_allowed("evilthehindu.com")
    assert not is_host_allowed("thehindu.com.evil.io")


def test_parse_http_url():
    assert parse_http_url("https://WWW.TheHindu.com/feed") == "www.thehindu.com"
    assert parse_http_url("ftp://thehindu.com/feed") is None
    assert parse_http_url("not a url") is None
    assert parse_http_url("") is None


# ════════════════════════════════════════════════════════════════════
# Content fetcher
# ════════════════════════════════════════════════════════════════════

def test_feed_fetch_drops_short_blocks(settings):
    transport = RecordingTransport(lambda request: httpx.Response(200, text=THREE_BLOCK_FEED))
    fetcher = ContentFetcher(settings, transport=transport)

    segments = asyncio.run(fetcher.fetch(feed_source()))

    assert len(segments) == 2
    assert all(len(s) > settings.feed_min_length for s in segments)
    assert transport.requested == ["https://thewire.in/politics/feed"]


def test_fetch_sends_bot_user_agent(settings):
    seen = {}

    def handler(request):
        seen["ua"] = request.headers["User-Agent"]
        return httpx.Response(200, text=THREE_BLOCK_FEED)

    asyncio.run(ContentFetcher(settings, transport=httpx.MockTransport(handler)).fetch(feed_source()))
    assert seen["ua"] == "Political Truth Tracker Bot 1.0"


def test_fetch_refuses_hosts_off_the_allow_list(settings):
    transport = RecordingTransport(lambda request: httpx.Response(200, text=THREE_BLOCK_FEED))
    fetcher = ContentFetcher(settings, transport=transport)
    source = feed_source(name="Evil", url="https://evil.example.com/feed")

    assert asyncio.run(fetcher.fetch(source)) == []
    with pytest.raises(HostNotAllowed):
        asyncio.run(fetcher.fetch_or_raise(source))
    assert transport.requested == []


def test_fetch_http_error_is_source_error(settings):
    fetcher = ContentFetcher(settings, transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    with pytest.raises(SourceFetchError) as exc:
        asyncio.run(fetcher.fetch_or_raise(feed_source()))
    assert "503" in str(exc.value)
    assert asyncio.run(fetcher.fetch(feed_source())) == []


def test_fetch_malformed_url_is_source_error(settings):
    transport = RecordingTransport(lambda request: httpx.Response(200, text=THREE_BLOCK_FEED))
    fetcher = ContentFetcher(settings, transport=transport)
    source = feed_source(url="https://thewire.in/politics/feed\x01")

    assert asyncio.run(fetcher.fetch(source)) == []
    with pytest.raises(SourceFetchError):
        asyncio.run(fetcher.fetch_or_raise(source))
    assert transport.requested == []


def test_feed_fetch_through_relay(settings):
    relayed = settings.model_copy(update={"relay_base_url": "http://relay.local"})

    def handler(request):
        assert request.url.path == "/fetch-relay"
        assert request.url.params["url"] == "https://thewire.in/politics/feed"
        return httpx.Response(200, text=THREE_BLOCK_FEED)

    fetcher = ContentFetcher(relayed, transport=httpx.MockTransport(handler))
    assert len(asyncio.run(fetcher.fetch(feed_source()))) == 2


def test_relay_403_maps_to_host_not_allowed(settings):
    relayed = settings.model_copy(update={"relay_base_url": "http://relay.local"})
    fetcher = ContentFetcher(
        relayed,
        transport=httpx.MockTransport(lambda r: httpx.Response(403, json={"error": "Host not allowed"})),
    )
    with pytest.raises(HostNotAllowed):
        asyncio.run(fetcher.fetch_or_raise(feed_source()))


def test_api_fetch_has_no_length_minimum(settings):
    body = json.dumps([{"title": "Budget"}, {"title": "Cricket score"}])
    fetcher = ContentFetcher(settings, transport=httpx.MockTransport(lambda r: httpx.Response(200, text=body)))
    source = Source(name="API", fetch_type=FetchType.API, url="https://api.example.org/items")
    assert asyncio.run(fetcher.fetch(source)) == ["Budget"]


def test_scrape_fetch_uses_longer_minimum(settings):
    long_sentence = "The government " + "announced new infrastructure funding for districts " * 3
    page = f"<html><body><p>Short government note. {long_sentence}.</p></body></html>"
    fetcher = ContentFetcher(settings, transport=httpx.MockTransport(lambda r: httpx.Response(200, text=page)))
    source = Source(name="Page", fetch_type=FetchType.SCRAPE, url="https://example.org/page")
    segments = asyncio.run(fetcher.fetch(source))
    assert segments == [long_sentence.strip()]


def test_iter_sources_never_fetches_inactive_sources(settings):
    transport = RecordingTransport(lambda request: httpx.Response(200, text=THREE_BLOCK_FEED))
    fetcher = ContentFetcher(settings, transport=transport)
    sources = [
        feed_source(),
        feed_source(name="Scroll (off)", url="https://scroll.in/politics/feed", active=False),
    ]

    async def collect():
        return [batch async for batch in fetcher.iter_sources(sources)]

    batches = asyncio.run(collect())
    assert [b.source.name for b in batches] == ["The Wire Politics"]
    assert transport.requested == ["https://thewire.in/politics/feed"]


def test_iter_sources_reports_failures_and_continues(settings):
    def handler(request):
        if request.url.host == "scroll.in":
            return httpx.Response(500)
        return httpx.Response(200, text=THREE_BLOCK_FEED)

    fetcher = ContentFetcher(settings, transport=httpx.MockTransport(handler))
    sources = [feed_source(name="Scroll", url="https://scroll.in/politics/feed"), feed_source()]

    async def collect():
        return [batch async for batch in fetcher.iter_sources(sources)]

    failed, ok = asyncio.run(collect())
    assert failed.error and "500" in failed.error
    assert failed.items == []
    assert ok.error is None
    assert len(ok.items) == 2


# ════════════════════════════════════════════════════════════════════
# Incident normalizer
# ════════════════════════════════════════════════════════════════════

def test_categorize_first_bucket_wins():
    title = "Minister accused of bribery in housing scheme"
    assert categorize_incident(title, "") == IncidentCategory.CORRUPTION
    assert categorize_incident(title, "") == categorize_incident(title, "")
    assert categorize_incident("Farmers rally in capital", "") == IncidentCategory.PROTEST
    assert categorize_incident("Clash at border village", "") == IncidentCategory.VIOLENCE
    assert categorize_incident("High court judgment on land", "") == IncidentCategory.LEGAL_CASE
    assert categorize_incident("Water scheme stalls", "") == IncidentCategory.POLICY_FAILURE
    assert categorize_incident("Minister visits museum", "") == IncidentCategory.OTHER


def test_normalize_date_formats():
    assert normalize_date("Tue, 05 Mar 2024 10:30:00 +0530") == "2024-03-05T05:00:00+00:00"
    assert normalize_date("2024-03-05T10:00:00Z") == "2024-03-05T10:00:00+00:00"
    assert normalize_date("2024-03-05") == "2024-03-05T00:00:00+00:00"


def test_normalize_date_falls_back_to_now():
    now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert normalize_date("sometime last week", now=now) == now.isoformat()
    assert normalize_date("", now=now) == now.isoformat()
    assert normalize_date(None, now=now) == now.isoformat()
    assert normalize_date("0001-01-01T00:00:00+01:00", now=now) == now.isoformat()
    assert normalize_date("9999-12-31T23:00:00-05:00", now=now) == now.isoformat()


def test_normalizer_filters_and_normalizes(settings):
    body = rss(
        ("Minister accused of bribery in housing scheme", "Opposition demands inquiry"),
        ("Cricket team wins series", "A thrilling final over"),
        ("", "Untitled government item"),
    )
    normalizer = IncidentNormalizer(settings)
    records = normalizer.parse(body, "The Wire - Politics")
    assert [r.title for r in records] == ["Minister accused of bribery in housing scheme"]

    incident = normalizer.normalize(records[0])
    assert incident.category == "corruption"
    assert incident.verified is False
    assert incident.id is None
    assert incident.source == "The Wire - Politics"
    assert incident.source_url == "https://thewire.in/0"
    assert incident.date == "2024-03-05T05:00:00+00:00"


def test_normalizer_caps_records_per_source(settings):
    body = rss(*[(f"Protest number {i} against government", "") for i in range(30)])
    assert len(IncidentNormalizer(settings).parse(body, "PIB")) == settings.incident_max_per_source


def test_normalizer_accepts_json_sources(settings):
    body = json.dumps([{"title": "Court case against MLA", "description": "Hearing adjourned", "date": "2024-01-10"}])
    records = IncidentNormalizer(settings).parse(body, "Tracker API", FetchType.JSON)
    assert len(records) == 1
    assert IncidentNormalizer(settings).normalize(records[0]).category == "legal-case"
