import json
import logging
from dataclasses import replace

from openai import OpenAI
from openai.types.chat import ChatCompletionUserMessageParam

from config import OPENAI_API_KEY, OPENAI_MODEL

logger = logging.getLogger(__name__)

_client = None


def get_client():
    global _client
    if _client is None:
        _client = OpenAI(api_key=OPENAI_API_KEY)
    return _client


def build_prompt(issue, criteria):
    listing = "\n".join(f"- {ac.id}: {ac.criterion}" for ac in criteria)
    return f"""
You are an expert QA engineer...
Jira Key: {issue.key}
Summary: {issue.summary}
Description: {issue.description}

Acceptance criteria without test cases:
{listing}

Suggest 1-3 short, concrete test cases for each criterion.
Output format (JSON):
{{
  "<criterion id>": ["Test case 1", "Test case 2"]
}}
"""


def suggest_test_cases(issue, criteria):
    """Ask the model for test cases for criteria that don't carry any yet."""
    missing = [ac for ac in criteria if not ac.test_cases]
    if not missing:
        return {}

    messages: list[ChatCompletionUserMessageParam] = [
        {"role": "user", "content": build_prompt(issue, missing)}
    ]
    resp = get_client().chat.completions.create(model=OPENAI_MODEL, messages=messages)

    try:
        raw = json.loads(resp.choices[0].message.content or "")
    except json.JSONDecodeError:
        logger.warning("Model returned non-JSON test case suggestions for %s", issue.key)
        return {}
    if not isinstance(raw, dict):
        return {}

    wanted = {ac.id for ac in missing}
    suggestions = {}
    for ac_id, cases in raw.items():
        if ac_id in wanted and isinstance(cases, list):
            cleaned = [c.strip() for c in cases if isinstance(c, str) and c.strip()]
            if cleaned:
                suggestions[ac_id] = cleaned
    return suggestions


def apply_suggestions(criteria, suggestions):
    return [
        replace(ac, test_cases=tuple(suggestions[ac.id])) if not ac.test_cases and ac.id in suggestions else ac
        for ac in criteria
    ]
