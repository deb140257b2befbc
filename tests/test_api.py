"""Tests for the price feed client."""

import json

import httpx
import pytest

from conftest import make_snapshot
from vaultstack.api import (
    CodeNotFound,
    FeedParseError,
    FeedUnavailable,
    PriceFeed,
    decode_payload,
    find_quote,
    parse_price,
    resolve_price,
)

GOLD = [
    {"Id": 1, "Kod": "GA", "Aciklama": "Gram Altin", "Alis": "2450.1200", "Satis": "2475.0000",
     "GuncellenmeZamani": "2024-05-02T10:15:00"},
    {"Id": 2, "Kod": "C", "Aciklama": "Ceyrek Altin", "Alis": "4.010,50", "Satis": "4.100,00",
     "GuncellenmeZamani": "2024-05-02T10:15:00"},
]
CURRENCY = [
    {"Id": 10, "Kod": "USD", "Aciklama": "Amerikan Dolari", "Alis": "32.4100", "Satis": "32.6000",
     "GuncellenmeZamani": "2024-05-02T10:15:00"},
]


def json_handler(gold=GOLD, currency=CURRENCY):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/Gold.json"):
            return httpx.Response(200, json=gold)
        if request.url.path.endswith("/Currency.json"):
            return httpx.Response(200, json=currency)
        return httpx.Response(404)
    return handler


def make_feed(handler) -> PriceFeed:
    return PriceFeed(base_url="https://feed.test", transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "text,expected",
    [
        ("4342.4900", 4342.49),
        ("4.342,49", 4342.49),
        ("abc", 0.0),
        ("", 0.0),
        ("32", 32.0),
    ],
)
def test_parse_price(text, expected):
    assert parse_price(text) == pytest.approx(expected)


def test_fetch_snapshot_from_json():
    snapshot = make_feed(json_handler()).fetch_snapshot()

    assert [q.code for q in snapshot.metals] == ["GA", "C"]
    assert [q.code for q in snapshot.currencies] == ["USD"]
    assert snapshot.metals[0].buy == pytest.approx(2450.12)
    assert snapshot.metals[0].sell == pytest.approx(2475.0)
    assert snapshot.metals[0].description == "Gram Altin"
    assert snapshot.metals[1].buy == pytest.approx(4010.5)


def test_fetch_snapshot_sends_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    make_feed(handler).fetch_snapshot()
    assert [r.url.path for r in seen] == ["/Gold.json", "/Currency.json"]
    assert seen[0].headers["Accept"] == "application/json"
    assert seen[0].headers["User-Agent"].startswith("VaultStack/")


def test_generic_field_names_are_accepted():
    gold = [{"code": "GA", "description": "Gram", "buyPrice": "2400.5", "sellPrice": "2410",
             "lastUpdated": "10:00"}]
    snapshot = make_feed(json_handler(gold=gold, currency=[])).fetch_snapshot()
    assert snapshot.metals[0].buy == pytest.approx(2400.5)
    assert snapshot.metals[0].updated_at == "10:00"


def test_fetch_snapshot_from_xml():
    body = (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<Kurlar xmlns="http://data.example/">'
        "<Kur><Kod>GA</Kod><Aciklama>Gram</Aciklama><Alis>2450,12</Alis><Satis>2475</Satis></Kur>"
        "<Kur><Kod>C</Kod><Aciklama>Ceyrek</Aciklama><Alis>4010.5</Alis><Satis>4100</Satis></Kur>"
        "</Kurlar>"
    )

    def handler(request):
        if request.url.path.endswith("/Gold.json"):
            return httpx.Response(200, content=body.encode(), headers={"Content-Type": "text/xml"})
        return httpx.Response(200, json=CURRENCY)

    snapshot = make_feed(handler).fetch_snapshot()
    assert [q.code for q in snapshot.metals] == ["GA", "C"]
    assert snapshot.metals[0].buy == pytest.approx(2450.12)


def test_decode_wrapped_xml():
    inner = "<Kurlar><Kur><Kod>USD</Kod><Alis>32.41</Alis><Satis>32.60</Satis></Kur></Kurlar>"
    escaped = inner.replace("<", "&lt;").replace(">", "&gt;")
    body = f'<string xmlns="http://data.example/">{escaped}</string>'.encode()

    records = decode_payload(body)
    assert records == [{"Kod": "USD", "Alis": "32.41", "Satis": "32.60"}]


def test_decode_soap_envelope_with_escaped_result():
    inner = (
        '<?xml version="1.0" encoding="utf-8"?>'
        "<Kurlar><Kur><Kod>GA</Kod><Alis>2450,12</Alis><Satis>2475</Satis></Kur></Kurlar>"
    )
    escaped = inner.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    body = (
        '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
        "<soap:Body>"
        '<GetGoldResponse xmlns="http://data.altinkaynak.com/">'
        f"<GetGoldResult>{escaped}</GetGoldResult>"
        "</GetGoldResponse>"
        "</soap:Body>"
        "</soap:Envelope>"
    ).encode()

    assert decode_payload(body) == [{"Kod": "GA", "Alis": "2450,12", "Satis": "2475"}]


@pytest.mark.parametrize(
    "body",
    [
        b"<Kurlar></Kurlar>",
        b"<Envelope><Body><GetGoldResult>maintenance</GetGoldResult></Body></Envelope>",
    ],
)
def test_xml_without_records_fails_snapshot(body):
    feed = make_feed(lambda request: httpx.Response(200, content=body))
    with pytest.raises(FeedParseError):
        feed.fetch_snapshot()


def test_server_error_is_feed_unavailable():
    feed = make_feed(lambda request: httpx.Response(503, text="maintenance"))
    with pytest.raises(FeedUnavailable):
        feed.fetch_snapshot()


def test_timeout_is_feed_unavailable():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(FeedUnavailable):
        make_feed(handler).fetch_snapshot()


def test_connection_error_is_feed_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FeedUnavailable):
        make_feed(handler).fetch_snapshot()


@pytest.mark.parametrize(
    "body",
    [b"{not json", json.dumps({"Kod": "GA"}).encode(), b"<Kurlar><Kur>", json.dumps([1, 2]).encode()],
)
def test_malformed_payload_is_parse_error(body):
    feed = make_feed(lambda request: httpx.Response(200, content=body))
    with pytest.raises(FeedParseError):
        feed.fetch_snapshot()


def test_record_without_code_is_parse_error():
    feed = make_feed(json_handler(gold=[{"Alis": "1"}]))
    with pytest.raises(FeedParseError):
        feed.fetch_snapshot()


def test_currency_failure_fails_whole_snapshot():
    def handler(request):
        if request.url.path.endswith("/Gold.json"):
            return httpx.Response(200, json=GOLD)
        return httpx.Response(500)

    with pytest.raises(FeedUnavailable):
        make_feed(handler).fetch_snapshot()


def test_resolve_price_is_case_and_space_insensitive():
    snapshot = make_snapshot(metals={"GA": 2200.0}, currencies={"USD": 32.5})
    assert resolve_price(snapshot, " ga ") == 2200.0
    assert resolve_price(snapshot, "usd") == 32.5


def test_resolve_price_prefers_metals_catalog():
    snapshot = make_snapshot(metals={"XAU": 100.0}, currencies={"XAU": 999.0})
    assert resolve_price(snapshot, "XAU") == 100.0


def test_resolve_price_unknown_code():
    with pytest.raises(CodeNotFound):
        resolve_price(make_snapshot(), "XPT")


def test_find_quote_returns_full_quote():
    quote = find_quote(make_snapshot(), "eur")
    assert quote.code == "EUR"
    assert quote.sell == pytest.approx(35.1 * 1.01)
