import json
import re
from typing import Any, List, Optional, Protocol

from taskboard.services.errors import ExtractionError, InvalidInput, UnparsableResponse, UpstreamError
from taskboard.utils.logging import audit_log

# Greedy on purpose: spans from the first "[" to the last "]" of the whole reply,
# so two separate arrays are captured as one (usually unparsable) span.
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

PROMPT_TEMPLATE = """
Analyze the following meeting transcript and extract actionable tasks. For each task, identify:
1. A clear, specific description of what needs to be done
2. Who is assigned to complete the task
3. When it's due (if mentioned, otherwise set as "No deadline")
4. Priority level (P1 for urgent/critical, P2 for important, P3 for normal)

Return ONLY a valid JSON array with this structure, and nothing else:
[
  {{
    "description": "Task description",
    "assignee": "Person's name",
    "dueDate": "Due date or 'No deadline'",
    "priority": "P1" | "P2" | "P3"
  }}
]

Meeting Transcript:
{transcript}
"""


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def build_prompt(transcript: str) -> str:
    return PROMPT_TEMPLATE.format(transcript=transcript)


def recover_json_array(text: str) -> List[Any]:
    """
    Pull the bracketed JSON array out of free model text.

    Raises UnparsableResponse (reason "no_array") when the text has no
    "[...]" span and (reason "invalid_json") when the span does not parse.
    """
    match = _ARRAY_RE.search(text)
    if not match:
        raise UnparsableResponse(
            "Gemini did not return a valid JSON array. Response was: " + text,
            raw_text=text,
            reason="no_array",
        )
    try:
        return json.loads(match.group(0), parse_constant=_reject_constant)
    except ValueError as e:
        raise UnparsableResponse(
            f"Could not parse JSON array from Gemini response: {e}",
            raw_text=text,
            reason="invalid_json",
        ) from e


def extract_tasks(transcript: Optional[str], generator: TextGenerator, request_id: str = "-") -> List[Any]:
    """
    Run one transcript through the model and return the recovered candidates.

    Candidates are returned untouched; defaulting happens in
    taskboard.services.board.normalize_candidates.
    """
    if not transcript or not transcript.strip():
        raise InvalidInput("No transcript provided")

    prompt = build_prompt(transcript)
    try:
        reply = generator.generate(prompt)
    except ExtractionError:
        raise
    except Exception as e:
        raise UpstreamError(str(e) or e.__class__.__name__, cause=e) from e

    audit_log(request_id, "llm_reply", payload={"text": reply})
    return recover_json_array(reply)
