"""Language-model calls behind the briefing ("Interrogator") flow.

The briefing conversation is planned by the model, not by us: each reply
says which layer it is on, which answer field it is collecting and whether
the brief is complete. This module builds the prompts, talks to the model and
the summary service over httpx, and turns replies into plain dicts.
"""

import json
import re
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from .config import settings
from .exceptions import ServiceNotConfigured, UpstreamUnavailable
from .logging_config import get_logger

logger = get_logger(__name__)

BRIEFING_LAYERS = {
    1: "Goal & audience: purpose, target audience, call to action",
    2: "Style & hook: vibe, opening hook, reference creators",
    3: "Editing & visuals: pacing, captions, transitions, colour, B-roll",
    4: "Audio & format: music, sound effects, duration, platform",
}

BRIEFING_SYSTEM_PROMPT = """You are a quick, friendly briefing assistant for short-form video editing.
Collect only the details the production brief is still missing.

Before asking anything, read the summary of the uploaded materials and the answers
collected so far. Never ask about something they already cover. Ask at most two
questions per layer and six in total; if everything is covered, finish at once.
Attached workspace files appear in messages as "[Attached: path]".

Layers:
{layers}

Ask one short question at a time. When moving to a new layer, open with a short
transition line. Reply ONLY with JSON of this shape:
{{"message": "text", "currentLayer": 1, "options": [{{"id": "opt1", "label": "Label", "value": "value"}}],
 "multiSelect": false, "fieldKey": "goal", "isComplete": false}}"""

FINAL_SECTIONS = (
    "Project Overview",
    "Target Audience & Platform",
    "Resources & References",
    "Style & Tone",
    "Hook & Opening",
    "Editing Instructions",
    "Audio & Music",
    "Final Checklist",
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"```\s*$")
_CAMEL_BOUNDARY = re.compile(r"([A-Z])")


def system_prompt() -> str:
    layers = "\n".join(f"LAYER {n}: {text}" for n, text in sorted(BRIEFING_LAYERS.items()))
    return BRIEFING_SYSTEM_PROMPT.format(layers=layers)


def parse_chat_reply(text: str) -> Dict[str, Any]:
    """Pull the first JSON object out of a model reply, falling back to plain text."""
    match = _JSON_OBJECT.search(text or "")
    if match:
        try:
            parsed = json.loads(match.group(0))
            if isinstance(parsed, dict):
                return parsed
        except ValueError:
            pass
    return {"message": text, "currentLayer": 1, "options": [], "isComplete": False}


def strip_code_fence(text: str) -> str:
    text = (text or "").strip()
    return _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", text)).strip()


def parse_task_list(text: str) -> List[Dict[str, Any]]:
    """Parse the model's task list; raises ``UpstreamUnavailable`` on malformed output."""
    try:
        tasks = json.loads(strip_code_fence(text))
    except ValueError:
        logger.warning("task_list_unparseable", reply=text[:200])
        raise UpstreamUnavailable("AI generated invalid task data. Please try again.")
    if not isinstance(tasks, list):
        raise UpstreamUnavailable("AI did not return a task array. Please try again.")
    return [t for t in tasks if isinstance(t, dict)]


def format_timestamp(seconds: Optional[int]) -> Optional[str]:
    if seconds is None:
        return None
    return f"{seconds // 60}:{seconds % 60:02d}"


def humanize_key(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r" \1", key).strip()


def _attachment_line(attachment) -> str:
    folder = f"{attachment.folder_name}/" if attachment.folder_name else ""
    return f"{folder}{attachment.name} ({attachment.url})"


def transcript(chat_history: Sequence) -> str:
    return "\n".join(
        f"{'Creator' if msg.role == 'user' else 'AI'}: {msg.text}" for msg in chat_history
    )


def build_final_prompt(
    summary: Optional[str],
    briefing_answers: Optional[Dict[str, Any]],
    file_attachments: Optional[Dict[str, list]],
    chat_history: Sequence,
) -> str:
    answers = briefing_answers or {}
    attachments = file_attachments or {}

    answer_lines = []
    for key, value in answers.items():
        shown = ", ".join(str(v) for v in value) if isinstance(value, list) else str(value)
        line = f"- {humanize_key(key)}: {shown}"
        files = attachments.get(key) or []
        if files:
            line += "\n  Referenced files: " + ", ".join(_attachment_line(f) for f in files)
        answer_lines.append(line)

    extra = [f for key, files in attachments.items() if key not in answers for f in files]
    extra_block = ""
    if extra:
        extra_block = "\nAdditional referenced files:\n" + "\n".join(f"- {_attachment_line(f)}" for f in extra)

    sections = "\n".join(f"## {name}" for name in FINAL_SECTIONS)
    return (
        "You write production-ready video editing briefs an editor can follow exactly.\n\n"
        f"1. Summary of the uploaded materials:\n{summary or 'No summary available.'}\n\n"
        f"2. Briefing answers:\n{chr(10).join(answer_lines) or 'No briefing answers.'}\n{extra_block}\n\n"
        f"3. Conversation transcript:\n{transcript(chat_history) or 'No conversation history.'}\n\n"
        "The transcript holds the creator's exact words; keep every concrete request. "
        "List every referenced file with its path and what it is for. Be direct.\n\n"
        f"Use exactly these sections:\n{sections}"
    )


def build_tasks_prompt(final_document: str, existing_titles: Iterable[str]) -> str:
    existing = list(existing_titles)
    existing_block = ""
    if existing:
        existing_block = "\n\nEXISTING TASKS (create only new ones):\n" + "\n".join(f"- {t}" for t in existing)
    return (
        "You are a video production project manager. Turn this production brief into "
        "actionable tasks for a video editor.\n\n"
        f"PRODUCTION BRIEF:\n{final_document}{existing_block}\n\n"
        "Return ONLY a JSON array, no markdown. Each item: "
        '{"title": "string", "description": "string", "priority": "high|medium|low"}'
    )


def _comment_line(comment) -> str:
    stamp = format_timestamp(comment.timestamp_sec)
    return f"[{stamp or 'General'}] {comment.author_email or 'Reviewer'}: {comment.text}"


def build_task_summary_prompt(title: str, description: str, comments: Sequence) -> str:
    lines = [_comment_line(c) for c in comments]
    return (
        "You assist a senior video editor. Summarise the reviewer comments below into a "
        "revision plan ordered by timestamp, marking each item critical, important or "
        "nice-to-have, grouping related feedback and ending with a short overview.\n\n"
        f'TASK: "{title}"\nTASK DESCRIPTION: {description or "No description"}\n\n'
        f"REVIEWER COMMENTS ({len(lines)} total):\n" + "\n".join(lines)
    )


def build_revision_checklist_prompt(feedback: Sequence[Tuple[str, Any]]) -> str:
    """``feedback`` pairs each comment with the title of the task it was left on."""
    lines = []
    for title, comment in feedback:
        stamp = format_timestamp(comment.timestamp_sec)
        where = f"At {stamp}" if stamp else "General"
        lines.append(f'- Task: "{title}" | {where} | By {comment.author_email or "Unknown"}: {comment.text}')
    return (
        "You coordinate revisions for a video editor. Consolidate the reviewer feedback "
        "below into ONE prioritised, actionable checklist the editor can work through.\n\n"
        "FEEDBACK:\n" + "\n".join(lines) + "\n\n"
        "Merge overlapping items. Put critical fixes first, then improvements, then "
        "nice-to-haves. Keep timestamps where given and group by area (audio, visuals, "
        "pacing, captions) when that helps. Answer in markdown with headers and numbered lists."
    )


def build_task_chat_prompt(task, comments: Sequence, message: str, history: Sequence) -> str:
    comment_block = "\n".join(_comment_line(c) for c in comments) or "No comments yet."
    conversation = "\n".join(
        f"{'Editor' if turn.role == 'user' else 'Assistant'}: {turn.content}" for turn in history
    )
    previous = f"PREVIOUS CONVERSATION:\n{conversation}\n\n" if conversation else ""
    status = getattr(task.status, "value", task.status)
    priority = getattr(task.priority, "value", task.priority)
    return (
        "You are the assistant inside a video editing task board. You know this task and "
        "all of its reviewer feedback; help the editor understand and resolve it.\n\n"
        f'TASK:\n- Title: "{task.title}"\n- Description: {task.description or "No description"}\n'
        f"- Status: {status}\n- Priority: {priority}\n\n"
        f"REVIEWER COMMENTS ({len(comments)} total):\n{comment_block}\n\n"
        f"{previous}"
        f"EDITOR'S QUESTION: {message}\n\n"
        "Answer from the task and its comments, cite the relevant timestamps, give concrete "
        "next steps and say what to clarify with the reviewer when the feedback is ambiguous. "
        "Be concise; markdown is fine."
    )


def extract_summary_text(data: Any) -> str:
    """The summary service wraps its result in ``body``, as a JSON string or object."""
    if not isinstance(data, dict) or not data.get("body"):
        return ""
    body = data["body"]
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            return body
    if isinstance(body, dict) and body.get("summary"):
        return str(body["summary"])
    return json.dumps(body)


class BriefingClient:
    """Outbound calls to the language model and the materials summary service."""

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        model: str,
        summary_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 3,
        retry_backoff: float = 2.0,
        http: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.summary_url = summary_url
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self._http = http or httpx.Client(timeout=timeout)
        self._sleep = sleep

    def close(self) -> None:
        self._http.close()

    # --- language model ---

    def _generate(self, contents: List[Dict[str, Any]]) -> str:
        if not self.api_key:
            raise ServiceNotConfigured("Language model API key not configured")
        url = f"{self.api_url}/models/{self.model}:generateContent"
        try:
            response = self._http.post(url, params={"key": self.api_key}, json={"contents": contents})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("llm_request_failed", model=self.model, error=str(exc))
            raise UpstreamUnavailable("The AI service is temporarily unavailable. Please try again.")
        try:
            candidates = response.json().get("candidates") or []
            parts = []
            if candidates:
                parts = (candidates[0].get("content") or {}).get("parts") or []
            text = "".join(part.get("text", "") for part in parts)
        except (ValueError, AttributeError, TypeError) as exc:
            logger.error("llm_response_malformed", model=self.model, error=str(exc))
            raise UpstreamUnavailable("The AI service returned an unreadable answer. Please try again.")
        if not candidates:
            raise UpstreamUnavailable("The AI service returned no answer. Please try again.")
        return text

    def generate(self, prompt: str) -> str:
        return self._generate([{"role": "user", "parts": [{"text": prompt}]}])

    def chat(self, summary: Optional[str], answers: Optional[Dict[str, Any]], history: Sequence) -> Dict[str, Any]:
        """One briefing turn. The last history entry is the creator's newest message."""
        primer = (
            f"SYSTEM INSTRUCTIONS:\n{system_prompt()}\n\n"
            f"Summary of the uploaded materials:\n\n{summary or 'No summary available.'}\n\n"
            f"Briefing answers collected so far: {json.dumps(answers or {})}"
        )
        contents = [
            {"role": "user", "parts": [{"text": primer}]},
            {"role": "model", "parts": [{"text": json.dumps(
                {"message": "Starting briefing analysis...", "currentLayer": 1, "options": [],
                 "multiSelect": False, "fieldKey": "init", "isComplete": False}
            )}]},
        ]
        for msg in history:
            contents.append({"role": "user" if msg.role == "user" else "model", "parts": [{"text": msg.text}]})
        if not history:
            contents.append({"role": "user", "parts": [{"text": "Start the briefing"}]})
        return parse_chat_reply(self._generate(contents))

    # --- summary service ---

    def summarize(self, files: List[Dict[str, Any]]) -> Dict[str, Any]:
        """POST the file list to the summary service, retrying with linear backoff."""
        if not self.summary_url:
            raise ServiceNotConfigured("Summary service not configured")
        last_error = ""
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self._http.post(self.summary_url, json={"files": files})
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_error = str(exc)
                logger.warning("summary_attempt_failed", attempt=attempt, max_retries=self.max_retries, error=last_error)
                if attempt < self.max_retries:
                    self._sleep(self.retry_backoff * attempt)
        logger.error("summary_unavailable", error=last_error)
        raise UpstreamUnavailable("The summary service is temporarily unavailable. Please try again.")


def create_briefing_client() -> BriefingClient:
    return BriefingClient(
        api_url=settings.llm_api_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        summary_url=settings.summary_api_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=settings.summary_max_retries,
        retry_backoff=settings.summary_retry_backoff_seconds,
    )
