import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.settings import Settings
from domain.errors import PermanentFailure, TransientFailure
from domain.schemas import ScoringVerdict
from infra.llm.prompts import SYSTEM_PROMPT, build_screening_prompt

logger = logging.getLogger("screening.scoring")

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.I)


@dataclass
class ChatProvider:
    name: str
    url: str
    api_key: str
    model: str
    extra_headers: Dict[str, str] = field(default_factory=dict)

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", **self.extra_headers}


def openai_provider(settings: Settings) -> ChatProvider:
    return ChatProvider("openai", "https://api.openai.com/v1/chat/completions",
                        settings.OPENAI_API_KEY, settings.OPENAI_MODEL)


def openrouter_provider(settings: Settings) -> ChatProvider:
    return ChatProvider(
        "openrouter",
        "https://openrouter.ai/api/v1/chat/completions",
        settings.OPENROUTER_API_KEY,
        settings.OPENROUTER_MODEL,
        extra_headers={"HTTP-Referer": "http://localhost", "X-Title": settings.APP_NAME},
    )


def _validate_llm_response(raw_text: str) -> ScoringVerdict:
    text = _FENCE.sub("", (raw_text or "").strip())
    try:
        return ScoringVerdict.model_validate_json(text)
    except ValidationError as exc:
        if any(err["type"] == "json_invalid" for err in exc.errors()):
            raise PermanentFailure("scoring response was not valid JSON") from exc
        raise PermanentFailure(f"scoring response failed validation: {exc}") from exc


def parse_chat_response(data: Dict) -> ScoringVerdict:
    try:
        choice = data["choices"][0]
        content = choice["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise PermanentFailure("unparsable scoring response") from exc
    if choice.get("finish_reason") == "content_filter":
        raise PermanentFailure("scoring request was blocked by the content policy")
    return _validate_llm_response(content)


class ScoringClient:
    """Scores CV text against a job through a chat-completions endpoint.

    One attempt per call, bounded by ``timeout`` end to end. Failures come out
    as TransientFailure (worth retrying later) or PermanentFailure; retry
    policy belongs to the caller.
    """

    def __init__(self, provider: ChatProvider, *, timeout: float = 60.0,
                 max_cv_chars: int = 12000, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.provider = provider
        self.timeout = timeout
        self.max_cv_chars = max_cv_chars
        self._transport = transport

    async def _post(self, payload: Dict) -> Dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.provider.url, headers=self.provider.headers(), json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TransientFailure("scoring request timed out") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status >= 500 or status in {408, 429}:
                raise TransientFailure(f"scoring service returned HTTP {status}") from exc
            raise PermanentFailure(f"scoring service rejected the request (HTTP {status})") from exc
        except httpx.RequestError as exc:
            raise TransientFailure(f"scoring service unreachable: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise PermanentFailure("scoring response was not valid JSON") from exc

    async def score(self, cv_text: str, job_description: str, required_skills: str,
                    **context: str) -> ScoringVerdict:
        if not (cv_text or "").strip():
            raise PermanentFailure("CV text is empty")
        if not (job_description or "").strip():
            raise PermanentFailure("job description is empty")

        content = build_screening_prompt(
            cv_text[:self.max_cv_chars], job_description, required_skills, **context)
        payload = {
            "model": self.provider.model,
            "temperature": 0.2,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
        }
        logger.info(f"Scoring {len(cv_text)} chars of CV text via {self.provider.name}")
        try:
            data = await asyncio.wait_for(self._post(payload), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise TransientFailure("scoring request timed out") from exc
        verdict = parse_chat_response(data)
        logger.info(f"Scoring verdict: score={verdict.overall_score} strengths={len(verdict.strengths)} "
                    f"weaknesses={len(verdict.weaknesses)}")
        return verdict


def split_skills(required_skills: str) -> List[str]:
    parts = re.split(r"[,;\n/•]|\band\b", required_skills or "", flags=re.I)
    seen, out = set(), []
    for p in parts:
        skill = p.strip(" .-*\t")
        if skill and skill.lower() not in seen:
            seen.add(skill.lower())
            out.append(skill)
    return out


class KeywordScoringClient:
    """Offline stand-in used when no LLM provider is configured.

    Scores by the share of required skills literally present in the CV, so
    results are deterministic.
    """

    async def score(self, cv_text: str, job_description: str, required_skills: str,
                    **context: str) -> ScoringVerdict:
        if not (cv_text or "").strip():
            raise PermanentFailure("CV text is empty")
        skills = split_skills(required_skills)
        haystack = cv_text.lower()
        matched = [s for s in skills if s.lower() in haystack]
        missing = [s for s in skills if s not in matched]
        score = round(100 * len(matched) / len(skills)) if skills else 50
        summary = (f"Keyword match of {score}% against the required skills "
                   f"({len(matched)} of {len(skills)}).") if skills else \
            "No required skills listed; neutral keyword score assigned."
        return ScoringVerdict(
            overall_score=score,
            summary=summary,
            strengths=[f"Mentions {s}" for s in matched],
            weaknesses=[f"No mention of {s}" for s in missing],
            detailed_analysis=(
                "Generated without an LLM provider: only literal skill mentions were counted. "
                "Configure OPENAI_API_KEY or OPENROUTER_API_KEY for a full assessment."
            ),
        )


def build_scoring_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
    if settings.OPENAI_API_KEY:
        provider = openai_provider(settings)
    elif settings.OPENROUTER_API_KEY:
        provider = openrouter_provider(settings)
    else:
        logger.warning("No LLM provider configured, using keyword scoring")
        return KeywordScoringClient()
    return ScoringClient(provider, timeout=settings.SCORING_TIMEOUT_SECONDS,
                         max_cv_chars=settings.SCORING_MAX_CV_CHARS, transport=transport)
