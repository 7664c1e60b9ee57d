import asyncio
import json

import httpx
import pytest

from app.settings import Settings
from domain.errors import PermanentFailure, TransientFailure
from infra.llm.client import (
    ChatProvider,
    KeywordScoringClient,
    ScoringClient,
    build_scoring_client,
    split_skills,
)

PROVIDER = ChatProvider("test", "https://llm.test/v1/chat/completions", "sk-test", "test-model")

VERDICT = {
    "overall_score": 78,
    "summary": "Strong backend fit",
    "strengths": ["5y Go", "Distributed systems"],
    "weaknesses": ["No Kubernetes"],
    "detailed_analysis": "...",
}


def chat_reply(content, finish_reason="stop"):
    return {"choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": finish_reason}]}


def client_for(handler, timeout=5.0, **kwargs):
    return ScoringClient(PROVIDER, timeout=timeout, transport=httpx.MockTransport(handler), **kwargs)


def score(client, cv_text="5 years of Go", description="Backend engineer", skills="Go"):
    return asyncio.run(client.score(cv_text, description, skills))


def test_success_returns_verdict_and_sends_prompt():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=chat_reply(json.dumps(VERDICT)))

    verdict = score(client_for(handler))
    assert verdict.overall_score == 78
    assert verdict.strengths == ["5y Go", "Distributed systems"]
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "test-model"
    assert "5 years of Go" in seen["body"]["messages"][1]["content"]


def test_pascal_case_and_code_fences_are_tolerated():
    content = "```json\n" + json.dumps({
        "OverallScore": 64.6, "Summary": "Partial fit", "Strengths": "Go", "Weaknesses": [],
        "DetailedAnalysis": "x",
    }) + "\n```"
    verdict = score(client_for(lambda request: httpx.Response(200, json=chat_reply(content))))
    assert verdict.overall_score == 65
    assert verdict.strengths == ["Go"]


def test_cv_text_is_truncated():
    seen = {}

    def handler(request):
        seen["prompt"] = json.loads(request.content)["messages"][1]["content"]
        return httpx.Response(200, json=chat_reply(json.dumps(VERDICT)))

    score(client_for(handler, max_cv_chars=10), cv_text="A" * 10 + "B" * 50)
    assert "A" * 10 in seen["prompt"]
    assert "B" not in seen["prompt"].split("CV CONTENT TO ANALYZE:")[1]


def test_transport_timeout_is_transient():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransientFailure, match="scoring request timed out"):
        score(client_for(handler))


def test_hard_timeout_bounds_a_hanging_call():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=chat_reply(json.dumps(VERDICT)))

    with pytest.raises(TransientFailure, match="scoring request timed out") as info:
        score(client_for(handler, timeout=0.05))
    assert info.value.retriable


@pytest.mark.parametrize("status", [500, 503, 429, 408])
def test_server_errors_are_transient(status):
    with pytest.raises(TransientFailure):
        score(client_for(lambda request: httpx.Response(status, json={"error": "busy"})))


@pytest.mark.parametrize("status", [400, 401, 422])
def test_client_errors_are_permanent(status):
    with pytest.raises(PermanentFailure) as info:
        score(client_for(lambda request: httpx.Response(status, json={"error": "bad"})))
    assert not info.value.retriable


def test_connection_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransientFailure):
        score(client_for(handler))


def test_unparsable_answer_is_permanent():
    with pytest.raises(PermanentFailure, match="not valid JSON"):
        score(client_for(lambda request: httpx.Response(200, json=chat_reply("I think they are great"))))


def test_out_of_range_score_is_permanent():
    bad = dict(VERDICT, overall_score=140)
    with pytest.raises(PermanentFailure, match="validation"):
        score(client_for(lambda request: httpx.Response(200, json=chat_reply(json.dumps(bad)))))


@pytest.mark.parametrize("changes", [
    {"summary": "   "},
    {"detailed_analysis": ""},
    {"detailed_analysis": None},
])
def test_blank_summary_or_analysis_is_permanent(changes):
    bad = {k: v for k, v in dict(VERDICT, **changes).items() if v is not None}
    with pytest.raises(PermanentFailure, match="validation"):
        score(client_for(lambda request: httpx.Response(200, json=chat_reply(json.dumps(bad)))))


def test_content_filter_is_permanent():
    reply = chat_reply("", finish_reason="content_filter")
    with pytest.raises(PermanentFailure, match="content policy"):
        score(client_for(lambda request: httpx.Response(200, json=reply)))


def test_empty_input_never_hits_the_network():
    def handler(request):
        raise AssertionError("should not be called")

    with pytest.raises(PermanentFailure):
        score(client_for(handler), cv_text="   ")
    with pytest.raises(PermanentFailure):
        score(client_for(handler), description="")


def test_keyword_scorer_counts_required_skills():
    verdict = asyncio.run(KeywordScoringClient().score(
        "Go developer with distributed systems experience", "Backend", "Go, Distributed systems, Kubernetes"))
    assert verdict.overall_score == 67
    assert verdict.weaknesses == ["No mention of Kubernetes"]


def test_split_skills_dedupes():
    assert split_skills("Go, go; Python and SQL\nDocker") == ["Go", "Python", "SQL", "Docker"]


def test_provider_selection():
    assert isinstance(build_scoring_client(Settings(OPENAI_API_KEY=None, OPENROUTER_API_KEY=None)),
                      KeywordScoringClient)
    client = build_scoring_client(Settings(OPENAI_API_KEY=None, OPENROUTER_API_KEY="or-key"))
    assert client.provider.name == "openrouter"
    client = build_scoring_client(Settings(OPENAI_API_KEY="sk", OPENROUTER_API_KEY="or-key"))
    assert client.provider.name == "openai"
