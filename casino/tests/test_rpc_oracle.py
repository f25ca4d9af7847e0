from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
import requests

from casino.errors import OracleUnavailable
from casino.oracle.rpc import RpcRandomnessSource


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, json: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def _ok(result: Any) -> FakeResponse:
    return FakeResponse({"jsonrpc": "2.0", "id": 1, "result": result})


def _source(*responses: Any) -> RpcRandomnessSource:
    return RpcRandomnessSource("http://beacon:8545", timeout_s=2.5, session=FakeSession(*responses))


def test_latest_round_uses_get_beacon_without_params():
    src = _source(_ok({"round_id": 41, "beacon": "0x00"}))
    assert src.latest_round() == 41
    call = src._session.calls[0]
    assert call["url"] == "http://beacon:8545"
    assert call["timeout"] == 2.5
    assert call["json"]["method"] == "rand.getBeacon"
    assert "params" not in call["json"]


def test_randomness_for_decodes_hex():
    src = _source(_ok({"round_id": 7, "beacon": "0xff00"}))
    assert src.randomness_for(7) == b"\xff\x00"
    assert src._session.calls[0]["json"]["params"] == {"round_id": 7}


def test_unpublished_round_is_none():
    assert _source(_ok(None)).randomness_for(9) is None


def test_alternate_field_names():
    src = _source(_ok({"roundId": "3", "output": "abcd"}))
    assert src.randomness_for(3) == b"\xab\xcd"


def test_round_mismatch_is_unavailable():
    with pytest.raises(OracleUnavailable):
        _source(_ok({"round_id": 8, "beacon": "0x01"})).randomness_for(7)


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("refused"),
        FakeResponse({}, status_code=503),
        FakeResponse(ValueError("not json")),
        FakeResponse({"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "down"}}),
        _ok({"round_id": 7, "beacon": "0xzz"}),
    ],
)
def test_transport_failures_are_unavailable(response):
    with pytest.raises(OracleUnavailable):
        _source(response).randomness_for(7)


def test_latest_round_without_rounds_is_unavailable():
    with pytest.raises(OracleUnavailable):
        _source(_ok(None)).latest_round()
    with pytest.raises(OracleUnavailable):
        _source(_ok({"round_id": "soon"})).latest_round()
