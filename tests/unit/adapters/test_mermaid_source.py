import asyncio

import httpx
import pytest

from covplatform.adapters.mermaid_source import PAGE_SIZE, MermaidSource
from covplatform.contracts.errors import ConfigurationError


def _source(handler, token="tok"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MermaidSource("https://api.example.org/v1", token, client=client)


def test_summaries_follow_next_and_report_progress():
    requests = []

    def handler(request):
        requests.append(request)
        if request.url.params.get("page") == "1":
            return httpx.Response(200, json={
                "count": 3,
                "next": f"https://api.example.org/v1/projectsummarysampleevents/?limit={PAGE_SIZE}&page=2",
                "results": [{"project_id": "a"}, {"project_id": "b"}],
            })
        return httpx.Response(200, json={"count": 3, "next": None, "results": [{"project_id": "c"}]})

    progress = []
    out = asyncio.run(_source(handler).list_project_summaries(on_progress=lambda n, t: progress.append((n, t))))
    assert [p["project_id"] for p in out] == ["a", "b", "c"]
    assert progress == [(2, 3), (3, 3)]
    assert requests[0].url.params["limit"] == str(PAGE_SIZE)
    assert all(r.headers["Authorization"] == "Bearer tok" for r in requests)


def test_protocol_csv_endpoint_and_token_provider():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="sample_event_id,x\na,1")

    src = _source(handler, token=lambda: "fresh")
    text = asyncio.run(src.get_protocol_csv("p-1", "habitatcomplexity"))
    assert text == "sample_event_id,x\na,1"
    assert seen[0].url.path == "/v1/projects/p-1/habitatcomplexities/sampleevents/csv/"
    assert seen[0].headers["Authorization"] == "Bearer fresh"


def test_unknown_protocol_and_missing_token():
    src = _source(lambda r: httpx.Response(200, text=""))
    with pytest.raises(ConfigurationError, match="Unknown protocol: fishbelt"):
        asyncio.run(src.get_protocol_csv("p-1", "fishbelt"))

    anon = _source(lambda r: httpx.Response(200, json={}), token=None)
    with pytest.raises(ConfigurationError):
        asyncio.run(anon.get_me())
