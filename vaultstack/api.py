"""Price feed client for current metal and currency prices."""

import json
import logging
from datetime import datetime
from xml.etree import ElementTree

import httpx
from pydantic import ValidationError

from .catalog import FeedCatalog, normalize_code
from .models import PriceQuote, PriceSnapshot, parse_price

__all__ = [
    "CodeNotFound",
    "FeedError",
    "FeedParseError",
    "FeedUnavailable",
    "PriceFeed",
    "find_quote",
    "parse_price",
    "resolve_price",
]

logger = logging.getLogger(__name__)

BASE_URL = "https://rest.altinkaynak.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "VaultStack/1.0"

CATALOG_PATHS = {
    FeedCatalog.METALS: "Gold.json",
    FeedCatalog.CURRENCIES: "Currency.json",
}

# Child elements that mark an XML element as a price record.
_XML_CODE_TAGS = ("Kod", "code")


class FeedError(Exception):
    """The price feed could not produce a snapshot."""


class FeedUnavailable(FeedError):
    """Network failure, timeout or non-success status from the feed."""


class FeedParseError(FeedError):
    """The feed answered with a payload we can't read."""


class CodeNotFound(LookupError):
    """An instrument code has no quote in the snapshot."""


class PriceFeed:
    """Client for the price feed's metals and currencies endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (base_url or BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS
        self._client = httpx.Client(
            timeout=self.timeout,
            transport=transport,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, catalog: FeedCatalog) -> list[PriceQuote]:
        """Fetch and decode one catalog."""
        url = f"{self.base_url}/{CATALOG_PATHS[catalog]}"
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as e:
            raise FeedUnavailable(f"Timed out fetching {catalog.value} prices") from e
        except httpx.HTTPError as e:
            raise FeedUnavailable(f"Could not reach price feed: {e}") from e

        if response.status_code != 200:
            raise FeedUnavailable(
                f"Price feed error {response.status_code} for {catalog.value} prices"
            )

        records = decode_payload(response.content)
        try:
            return [PriceQuote.model_validate(record) for record in records]
        except ValidationError as e:
            raise FeedParseError(f"Invalid {catalog.value} price record: {e}") from e

    def fetch_snapshot(self) -> PriceSnapshot:
        """Fetch metals then currencies and merge them into one snapshot."""
        metals = self._request(FeedCatalog.METALS)
        currencies = self._request(FeedCatalog.CURRENCIES)
        snapshot = PriceSnapshot(
            fetched_at=datetime.now(),
            metals=tuple(metals),
            currencies=tuple(currencies),
        )
        logger.info(
            "Fetched price snapshot: %d metals, %d currencies",
            len(snapshot.metals),
            len(snapshot.currencies),
        )
        return snapshot


def decode_payload(body: bytes) -> list[dict]:
    """Turn a JSON array or XML document into a list of record dicts."""
    if body.lstrip().startswith(b"<"):
        return _decode_xml(body)
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FeedParseError(f"Malformed JSON from price feed: {e}") from e
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise FeedParseError("Expected a JSON array of price records")
    return data


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _decode_xml(body: bytes) -> list[dict]:
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError as e:
        raise FeedParseError(f"Malformed XML from price feed: {e}") from e

    # Some feeds, SOAP results included, carry the real document as escaped
    # text inside a leaf element.
    for element in root.iter():
        inner = (element.text or "").strip()
        if len(element) == 0 and inner.startswith("<"):
            return _decode_xml(inner.encode("utf-8"))

    records = []
    for element in root.iter():
        fields = {_local_name(child.tag): (child.text or "").strip() for child in element}
        if any(tag in fields for tag in _XML_CODE_TAGS):
            records.append(fields)
    if not records:
        raise FeedParseError("No price records in XML from price feed")
    return records


def find_quote(snapshot: PriceSnapshot, code: str) -> PriceQuote:
    """Find the quote for a code, searching metals before currencies.

    A code published in both catalogs resolves to the metals entry.
    """
    code = normalize_code(code)
    for quote in snapshot.metals:
        if normalize_code(quote.code) == code:
            return quote
    for quote in snapshot.currencies:
        if normalize_code(quote.code) == code:
            return quote
    raise CodeNotFound(f"Unknown instrument code: {code}")


def resolve_price(snapshot: PriceSnapshot, code: str) -> float:
    """Current buy price for a code."""
    return find_quote(snapshot, code).buy
