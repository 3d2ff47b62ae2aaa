# llm_utils.py
#
# Purpose:
# The Groq-backed semantic provider. It sends batches of commit messages to a
# chat model, asks for strict JSON back, and hands the raw entries to
# semantic.py, which validates them.
#
# Why this is its own file:
# - scoring / analytics stay deterministic (math only)
# - this file owns the non-deterministic, external part (LLM calls)
# - semantic.py only needs "something with analyze_batch()", so tests can
#   swap this class for a fake without touching the network
#
# Key design choices:
# 1) The API key comes from the environment (never hard-coded)
# 2) Messages are truncated and shas shortened to keep prompts small
# 3) The model must return JSON only; the output is still cleaned up before
#    parsing because models add markdown fences anyway
# 4) Each request is retried 3 times with exponential backoff (1s, 2s)
# 5) Token usage is reported back per call; nothing is counted globally

import json
import logging
import os
import re
import time

import groq
from groq import Groq

from models import COMMIT_INTENTS, BatchResult, TokenUsage


logger = logging.getLogger(__name__)

GROQ_API_KEY = os.getenv("GROQ_API_KEY")

# Allow model to be overridden, but default to a fast/cheap one.
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

MAX_ATTEMPTS = 3
MAX_MESSAGE_CHARS = 500
SHORT_SHA = 7


class SemanticProviderError(Exception):
    """Raised after every attempt of a provider request has failed."""

    def __init__(self, message, usage=None):
        super().__init__(message)
        # tokens burned by the failed attempts, so callers can still count them
        self.usage = usage or TokenUsage()


def _require_key():
    """Return an error string when GROQ_API_KEY is missing, else None."""
    if not GROQ_API_KEY:
        return "Missing GROQ_API_KEY. Set it in the environment to enable AI analysis."
    return None


def _extract_json(text):
    """
    Parse JSON from the model output.

    LLMs sometimes wrap the answer in ```json fences or add commentary, even
    when told not to. Best effort:
      1) remove markdown fences
      2) try json.loads directly
      3) fall back to the first {...} or [...] block in the text
    Raises ValueError when nothing parses.
    """
    if not text:
        raise ValueError("Empty response")

    cleaned = text.strip()
    cleaned = cleaned.replace("```json", "").replace("```", "").strip()

    try:
        return json.loads(cleaned)
    except ValueError:
        pass

    for pattern in (r"\{.*\}", r"\[.*\]"):
        m = re.search(pattern, cleaned, flags=re.DOTALL)
        if m:
            try:
                return json.loads(m.group(0))
            except ValueError:
                continue
    raise ValueError("No JSON object found in model output.")


def _usage_of(resp):
    u = getattr(resp, "usage", None)
    if u is None:
        return TokenUsage()
    return TokenUsage(
        prompt_tokens=int(getattr(u, "prompt_tokens", 0) or 0),
        completion_tokens=int(getattr(u, "completion_tokens", 0) or 0),
        total_tokens=int(getattr(u, "total_tokens", 0) or 0),
    )


def _entries(data, key):
    """Pull the list of entries out of {"<key>": [...]} or a bare list."""
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of {key}")
    return data


class GroqCommitAnalyzer:
    """
    Semantic provider backed by a Groq chat model.

    client can be any object with chat.completions.create(...) (tests pass a
    stub); by default a real Groq client is built from api_key / GROQ_API_KEY.
    """

    def __init__(self, api_key=None, model=None, client=None, max_attempts=MAX_ATTEMPTS, sleep=time.sleep):
        self.model = model or GROQ_MODEL
        self.client = client if client is not None else Groq(api_key=api_key or GROQ_API_KEY)
        self.max_attempts = max_attempts
        self._sleep = sleep

    def _request_json(self, system, prompt, temperature, max_tokens):
        """
        One chat request that must come back as JSON.

        Returns (data, TokenUsage). API errors and unparsable output are
        retried; usage from every attempt is summed.
        """
        usage = TokenUsage()
        last_error = None
        last_raw = ""

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
                usage = usage + _usage_of(resp)

                raw = (resp.choices[0].message.content or "").strip()
                last_raw = raw
                return _extract_json(raw), usage

            except (groq.APIError, ValueError) as e:
                last_error = repr(e)
                logger.debug("Groq request attempt %d/%d failed: %s", attempt, self.max_attempts, last_error)
                if attempt < self.max_attempts:
                    # Exponential backoff: 1s, 2s
                    self._sleep(2 ** (attempt - 1))

        preview = (last_raw[:300] + "...") if last_raw else ""
        raise SemanticProviderError(
            f"Groq request failed after {self.max_attempts} attempts. Last error: {last_error}. Preview: {preview}",
            usage=usage,
        )

    def analyze_batch(self, items):
        """
        Analyse up to 20 commits.

        items: list of {"sha", "message", "body"}
        Returns BatchResult whose analyses map the sha the model echoed
        (usually the 7-char short sha) to the raw entry dict.
        """
        payload = []
        for it in items:
            text = (it.get("message") or "")
            if it.get("body"):
                text = text + "\n\n" + it["body"]
            payload.append({"sha": (it.get("sha") or "")[:SHORT_SHA], "message": text[:MAX_MESSAGE_CHARS]})

        prompt = f"""
Analyze these Git commit messages and provide semantic analysis for each.

For each commit, return:
- sha: the sha exactly as given
- intent: one of {list(COMMIT_INTENTS)}
- clarity_score: integer 0-100, how clear and understandable the message is
- completeness_score: integer 0-100, does it describe what changed and why
- technical_quality_score: integer 0-100, technical accuracy and professionalism
- summary: brief (about 10 words) summary of what the commit does

Commits to analyze:
{json.dumps(payload, indent=2)}

Return ONLY a JSON object of the form {{"results": [...]}}. No markdown, no extra text.
""".strip()

        data, usage = self._request_json(
            "You are a Git commit analyzer. You return only valid JSON. No markdown. No commentary.",
            prompt,
            temperature=0.3,
            max_tokens=2000,
        )

        analyses = {}
        for entry in _entries(data, "results"):
            if not isinstance(entry, dict) or not entry.get("sha"):
                logger.warning("Dropping semantic entry without sha: %r", entry)
                continue
            analyses[str(entry["sha"])] = entry

        return BatchResult(analyses=analyses, usage=usage)

    def generate_insights(self, summary):
        """
        Ask for 5-8 repository-level insights.

        summary is the dict from semantic.insight_summary().
        Returns (list of raw insight dicts, TokenUsage).
        """
        prompt = f"""
Based on this repository analysis, generate 5-8 actionable insights.

Repository summary:
{json.dumps(summary, indent=2)}

Cover commit message quality patterns, areas needing improvement, best
practices followed or missed, team collaboration, and technical debt.

For each insight return:
- title (5-10 words)
- description (2-3 sentences)
- impact
- recommendation (specific, actionable)
- severity: "info", "warning" or "critical"

Return ONLY a JSON object of the form {{"insights": [...]}}.
""".strip()

        data, usage = self._request_json(
            "You are a Git repository analyst. Return only JSON. Do not include markdown.",
            prompt,
            temperature=0.5,
            max_tokens=1500,
        )
        return _entries(data, "insights"), usage


def make_default_provider():
    """
    Build the Groq provider from the environment, or return None when no key
    is configured (the caller then runs with AI disabled).
    """
    err = _require_key()
    if err:
        logger.info(err)
        return None
    return GroqCommitAnalyzer()
