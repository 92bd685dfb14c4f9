import json
import logging
from typing import List, Dict, Any, Optional

from azure.ai.inference import ChatCompletionsClient
from azure.ai.inference.models import SystemMessage, UserMessage
from azure.core.credentials import AzureKeyCredential

from config import Settings, get_settings
from exceptions import RuleSuggestionError

logger = logging.getLogger(__name__)


# --------- GPTAgent Wrapper ---------
class GPTAgent:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        if not self.settings.github_token:
            raise ValueError("Missing GITHUB_TOKEN env variable")

        self.client = ChatCompletionsClient(
            endpoint=self.settings.ai_endpoint,
            credential=AzureKeyCredential(self.settings.github_token)
        )
        self.model_name = self.settings.ai_model

    def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        messages = [
            SystemMessage(content=system_prompt),
            UserMessage(content=user_prompt)
        ]

        response = self.client.complete(
            messages=messages,
            model=self.model_name,
            temperature=self.settings.ai_temperature,
            top_p=1.0,
            max_tokens=self.settings.ai_max_tokens
        )

        return response.choices[0].message.content or ""


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if not text.startswith("```"):
        return text
    lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
    return "\n".join(lines).strip()


def _extract_json(text: str, opener: str, closer: str) -> Any:
    """Pulls the outermost JSON array/object out of a chatty model reply."""
    text = _strip_code_fences(text or "")
    start = text.find(opener)
    end = text.rfind(closer)
    if start != -1 and end > start:
        return json.loads(text[start:end + 1])
    return json.loads(text)


def _sample(rows: List[Dict[str, Any]], size: int) -> str:
    return json.dumps(rows[:size], indent=2)


# --------- Rule suggestions ---------

def recommend_rules(
    gpt_agent,
    clients: List[Dict[str, Any]],
    workers: List[Dict[str, Any]],
    tasks: List[Dict[str, Any]],
    sample_rows: int = 5,
) -> List[Dict[str, Any]]:
    """
    Asks the model for scheduling rules over a sample of the three batches.
    Returns the raw rule dicts; co-run rules among them still have to pass the
    cycle check before they are accepted.
    """
    prompt = f"""
You are a smart scheduling assistant. Based on the clients, tasks, and workers below, suggest 3 useful scheduling or co-run rules.

Clients:
{_sample(clients, sample_rows)}

Tasks:
{_sample(tasks, sample_rows)}

Workers:
{_sample(workers, sample_rows)}

Reply with a JSON array of rules like:
[
  {{"type": "coRun", "tasks": ["T1", "T3"]}},
  {{"type": "loadLimit", "workerGroup": "G1", "maxSlotsPerPhase": 2}}
]
Only use TaskIDs that appear in the tasks data. Return ONLY the JSON array. No explanations, no markdown.
"""

    result_str = gpt_agent.chat_completion(
        system_prompt="You are a business rules AI. Return only valid JSON arrays of rule objects.",
        user_prompt=prompt
    )
    logger.debug("rule suggestion reply", extra={"reply": result_str[:200]})

    try:
        rules = _extract_json(result_str, "[", "]")
    except ValueError as exc:
        raise RuleSuggestionError(f"Failed to parse AI response: {exc}") from exc

    if not isinstance(rules, list):
        raise RuleSuggestionError("AI response is not a list of rules")

    logger.info("received AI rule suggestions", extra={"count": len(rules)})
    return [rule for rule in rules if isinstance(rule, dict)]


def nl_to_rule(
    gpt_agent,
    user_rule_request: str,
    clients: List[Dict[str, Any]],
    workers: List[Dict[str, Any]],
    tasks: List[Dict[str, Any]],
    sample_rows: int = 5,
) -> Optional[Dict[str, Any]]:
    """
    Converts a natural language rule description into a rule object using the
    language model, with a sample of the data as context.
    """
    prompt = f'''
Analyze the following data to understand the context and create a rule:

Clients (sample):
{_sample(clients, sample_rows)}

Workers (sample):
{_sample(workers, sample_rows)}

Tasks (sample):
{_sample(tasks, sample_rows)}

Convert the following natural language rule description into a structured JSON rule:
"""{user_rule_request.strip()}"""

If the description asks for tasks to run together, return {{"type": "coRun", "tasks": [<TaskIDs>]}}.
Otherwise return an object with a "type" field and the parameters it needs.

Return only the JSON object. No explanations and no code blocks.
'''

    result_str = gpt_agent.chat_completion(
        system_prompt="You are an expert AI rules converter that transforms natural language descriptions of allocation rules into structured JSON rule objects.",
        user_prompt=prompt
    )

    try:
        rule = _extract_json(result_str, "{", "}")
    except ValueError:
        logger.warning("failed to parse rule JSON", extra={"reply": (result_str or "")[:200]})
        return None

    return rule if isinstance(rule, dict) else None
