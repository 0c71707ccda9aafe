import sys
from pathlib import Path
from datetime import date

import httpx
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.runner import Runner
from services.errors import FetchFailure
from services.odds_source import HttpOddsSource

RACE_DAY = date(2024, 5, 1)

RUNNERS_PAYLOAD = [
    {"runnerId": 101, "name": "Sea Bird", "event": "01-05-2024 13:30 Ascot", "odds": 3.5},
    {"selectionId": 102, "runnerName": " Night Owl ", "eventName": "01-05-2024 13:30 Ascot", "price": "4.2"},
    {"runnerId": 103, "name": "Scratched", "event": "01-05-2024 13:30 Ascot", "odds": None},
]


def _source(handler, **kwargs):
    return HttpOddsSource(
        base_url="http://odds.test/api/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_fetch_parses_runner_list_and_sends_date():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["app_key"] = request.headers.get("X-Application")
        return httpx.Response(200, json=RUNNERS_PAYLOAD)

    source = _source(handler, app_key="abc123")
    try:
        runners = await source.fetch_current_odds(RACE_DAY)
    finally:
        await source.close()

    assert seen["url"] == "http://odds.test/api/runners?date=2024-05-01"
    assert seen["app_key"] == "abc123"
    assert list(runners) == [101, 102, 103]
    assert runners[102] == Runner(
        runner_id=102, name="Night Owl", event="01-05-2024 13:30 Ascot", odds=4.2
    )
    assert runners[103].odds is None
    assert not runners[103].has_price


@pytest.mark.asyncio
async def test_fetch_accepts_wrapped_payload_and_skips_malformed_entries():
    payload = {"runners": RUNNERS_PAYLOAD[:1] + [{"name": "no id"}, "junk"]}
    source = _source(lambda request: httpx.Response(200, json=payload), app_key="")

    runners = await source.fetch_current_odds(RACE_DAY)

    assert list(runners) == [101]


@pytest.mark.asyncio
async def test_http_error_status_is_fetch_failure():
    source = _source(lambda request: httpx.Response(503, text="maintenance"))

    with pytest.raises(FetchFailure, match="HTTP 503"):
        await source.fetch_current_odds(RACE_DAY)


@pytest.mark.asyncio
async def test_transport_error_is_fetch_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    source = _source(handler)

    with pytest.raises(FetchFailure, match="unreachable"):
        await source.fetch_current_odds(RACE_DAY)


@pytest.mark.asyncio
async def test_invalid_json_is_fetch_failure():
    source = _source(lambda request: httpx.Response(200, text="<html>login</html>"))

    with pytest.raises(FetchFailure, match="invalid JSON"):
        await source.fetch_current_odds(RACE_DAY)


@pytest.mark.asyncio
async def test_non_list_payload_is_fetch_failure():
    source = _source(lambda request: httpx.Response(200, json=42))

    with pytest.raises(FetchFailure):
        await source.fetch_current_odds(RACE_DAY)


def test_runner_odds_coercion():
    assert Runner.from_api_response({"id": "7", "odds": "nan"}).odds is None
    assert Runner.from_api_response({"id": 7, "odds": True}).odds is None
    assert Runner.from_api_response({"id": 7, "lastPriceTraded": 2}).odds == 2.0
    with pytest.raises(ValueError):
        Runner.from_api_response({"name": "anonymous"})
