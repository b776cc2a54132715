"""
HTTP adapter smoke tests.  The app runs on a synthetic-only engine so
nothing leaves the process.
"""
import datetime as dt
import random

import pytest
from fastapi.testclient import TestClient

from stock_engine.app.api import build_engine, create_app
from stock_engine.core.config import EngineSettings
from stock_engine.core.synthetic import SyntheticProvider


@pytest.fixture
def client():
    settings = EngineSettings(use_live_data=False, cache_sweep_secs=3600)
    engine = build_engine(settings)
    engine.chain.providers = [SyntheticProvider(random.Random(8), today=lambda: dt.date(2024, 6, 1))]
    engine.synthetic = engine.chain.providers[0]
    with TestClient(create_app(settings, engine)) as c:
        yield c


def test_series_endpoint(client):
    resp = client.get("/stocks/aapl", params={"range": "1w"})
    assert resp.status_code == 200
    bars = resp.json()
    assert len(bars) == 8
    assert bars[-1]["date"] == "2024-06-01"


def test_indicator_endpoint(client):
    resp = client.get("/stocks/AAPL/indicators", params={"indicator": "BB", "range": "1m"})
    assert resp.status_code == 200
    assert set(resp.json()[-1]) == {"date", "upper", "middle", "lower", "price"}


def test_unknown_indicator_is_client_error(client):
    resp = client.get("/stocks/AAPL/indicators", params={"indicator": "vwap"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "UnsupportedIndicator"
    assert body["symbol"] == "AAPL"


def test_invalid_symbol_rejected(client):
    assert client.get("/stocks/TOOLONGSYM").status_code == 400


def test_technical_analysis_endpoint(client):
    resp = client.get("/stocks/MSFT/technical-analysis")
    assert resp.status_code == 200
    body = resp.json()
    assert body["timeRange"] == "3m"
    assert "bollingerBands" in body["indicators"]


def test_quote_52week_and_compare(client):
    assert client.get("/stocks/IBM/quote").json()["symbol"] == "IBM"
    week = client.get("/stocks/IBM/52week").json()
    assert week["fiftyTwoWeekLow"] <= week["fiftyTwoWeekHigh"]
    compare = client.get("/compare", params={"symbols": "AAPL,msft", "range": "5d"}).json()
    assert set(compare) == {"AAPL", "MSFT"}
    assert len(compare["MSFT"]) == 6
