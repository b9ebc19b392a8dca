"""Tests for briefing prompts, reply parsing and the outbound client."""

import json

import httpx
import pytest

from thecrew.briefing import (
    BRIEFING_LAYERS,
    FINAL_SECTIONS,
    BriefingClient,
    build_final_prompt,
    build_revision_checklist_prompt,
    build_task_chat_prompt,
    build_task_summary_prompt,
    build_tasks_prompt,
    extract_summary_text,
    format_timestamp,
    humanize_key,
    parse_chat_reply,
    parse_task_list,
    system_prompt,
)
from thecrew.exceptions import ServiceNotConfigured, UpstreamUnavailable
from thecrew.models import Task, TaskComment
from thecrew.schemas import ChatMessage, FileAttachment, TaskChatTurn


def model_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_client(handler, **kwargs):
    sleeps = []
    client = BriefingClient(
        api_url="https://llm.crew.io/v1beta",
        api_key=kwargs.pop("api_key", "key-123"),
        model="test-model",
        summary_url=kwargs.pop("summary_url", "https://summary.crew.io/run"),
        http=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=sleeps.append,
        **kwargs,
    )
    return client, sleeps


class TestParsing:
    def test_chat_reply_json(self):
        reply = parse_chat_reply('Sure! {"message": "Who is it for?", "currentLayer": 2, "isComplete": false}')

        assert reply["message"] == "Who is it for?"
        assert reply["currentLayer"] == 2

    def test_chat_reply_plain_text_falls_back(self):
        reply = parse_chat_reply("Tell me about your audience.")

        assert reply == {
            "message": "Tell me about your audience.",
            "currentLayer": 1,
            "options": [],
            "isComplete": False,
        }

    def test_chat_reply_broken_json_falls_back(self):
        assert parse_chat_reply("{not json}")["message"] == "{not json}"

    def test_task_list_with_code_fence(self):
        text = '```json\n[{"title": "Cut intro", "priority": "high"}, "noise"]\n```'

        assert parse_task_list(text) == [{"title": "Cut intro", "priority": "high"}]

    def test_task_list_invalid(self):
        with pytest.raises(UpstreamUnavailable):
            parse_task_list("here are your tasks")

    def test_task_list_not_a_list(self):
        with pytest.raises(UpstreamUnavailable):
            parse_task_list('{"title": "Cut intro"}')

    def test_format_timestamp(self):
        assert format_timestamp(None) is None
        assert format_timestamp(5) == "0:05"
        assert format_timestamp(125) == "2:05"

    def test_humanize_key(self):
        assert humanize_key("targetAudience") == "target Audience"

    def test_extract_summary_text(self):
        assert extract_summary_text({"body": json.dumps({"summary": "Demo clips"})}) == "Demo clips"
        assert extract_summary_text({"body": {"summary": "Demo clips"}}) == "Demo clips"
        assert extract_summary_text({"body": "plain words"}) == "plain words"
        assert extract_summary_text({}) == ""
        assert extract_summary_text(None) == ""


class TestPrompts:
    def test_system_prompt_lists_layers(self):
        prompt = system_prompt()

        for number in BRIEFING_LAYERS:
            assert f"LAYER {number}:" in prompt
        assert '"isComplete": false' in prompt

    def test_final_prompt(self):
        attachments = {
            "hook": [FileAttachment(name="intro.mp4", url="http://testserver/objects/u/intro.mp4", folder_name="Raw")],
            "music": [FileAttachment(name="track.mp3", url="http://testserver/objects/u/track.mp3")],
        }
        history = [ChatMessage(role="user", text="Make it punchy"), ChatMessage(role="model", text="Got it")]

        prompt = build_final_prompt("Demo clips", {"hook": "question", "platforms": ["tiktok", "reels"]}, attachments, history)

        assert "Demo clips" in prompt
        assert "- hook: question" in prompt
        assert "- platforms: tiktok, reels" in prompt
        assert "Raw/intro.mp4 (http://testserver/objects/u/intro.mp4)" in prompt
        assert "Additional referenced files:" in prompt
        assert "Creator: Make it punchy" in prompt
        assert "AI: Got it" in prompt
        for section in FINAL_SECTIONS:
            assert f"## {section}" in prompt

    def test_final_prompt_empty_inputs(self):
        prompt = build_final_prompt(None, None, None, [])

        assert "No summary available." in prompt
        assert "No briefing answers." in prompt
        assert "No conversation history." in prompt

    def test_tasks_prompt_lists_existing(self):
        prompt = build_tasks_prompt("# Brief", ["Cut intro"])

        assert "# Brief" in prompt
        assert "- Cut intro" in prompt

    def test_task_summary_prompt(self):
        comments = [
            TaskComment(workspace_id="ws", task_id="t", author_id="u", author_email="eve@crew.io", text="Too loud", timestamp_sec=65),
            TaskComment(workspace_id="ws", task_id="t", author_id="u", text="Love it"),
        ]

        prompt = build_task_summary_prompt("Edit v1", "", comments)

        assert '"Edit v1"' in prompt
        assert "[1:05] eve@crew.io: Too loud" in prompt
        assert "[General] Reviewer: Love it" in prompt
        assert "(2 total)" in prompt

    def test_revision_checklist_prompt(self):
        feedback = [
            ("Edit intro", TaskComment(workspace_id="ws", task_id="t1", author_id="u", author_email="eve@crew.io", text="Too loud", timestamp_sec=5)),
            ("Edit outro", TaskComment(workspace_id="ws", task_id="t2", author_id="u", text="Add a CTA")),
        ]

        prompt = build_revision_checklist_prompt(feedback)

        assert '- Task: "Edit intro" | At 0:05 | By eve@crew.io: Too loud' in prompt
        assert '- Task: "Edit outro" | General | By Unknown: Add a CTA' in prompt

    def test_task_chat_prompt(self):
        task = Task(workspace_id="ws", title="Edit v1", created_by="u")
        comments = [TaskComment(workspace_id="ws", task_id="t", author_id="u", text="Shorter", timestamp_sec=3)]
        history = [TaskChatTurn(role="user", content="Hi"), TaskChatTurn(role="model", content="Hello")]

        prompt = build_task_chat_prompt(task, comments, "How short?", history)

        assert '- Title: "Edit v1"' in prompt
        assert "- Description: No description" in prompt
        assert "- Status: todo" in prompt
        assert "[0:03] Reviewer: Shorter" in prompt
        assert "PREVIOUS CONVERSATION:\nEditor: Hi\nAssistant: Hello" in prompt
        assert "EDITOR'S QUESTION: How short?" in prompt


class TestBriefingClient:
    def test_generate(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.url.params.get("key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=model_reply("# Brief"))

        client, _ = make_client(handler)

        assert client.generate("write it") == "# Brief"
        assert seen["path"] == "/v1beta/models/test-model:generateContent"
        assert seen["key"] == "key-123"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "write it"

    def test_generate_without_key(self):
        client, _ = make_client(lambda request: httpx.Response(200), api_key=None)

        with pytest.raises(ServiceNotConfigured):
            client.generate("write it")

    def test_generate_upstream_error(self):
        client, _ = make_client(lambda request: httpx.Response(500))

        with pytest.raises(UpstreamUnavailable):
            client.generate("write it")

    def test_generate_no_candidates(self):
        client, _ = make_client(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(UpstreamUnavailable):
            client.generate("write it")

    def test_generate_non_json_body(self):
        client, _ = make_client(lambda request: httpx.Response(200, text="<html>Bad gateway</html>"))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            client.generate("write it")

        assert exc_info.value.status_code == 502

    def test_generate_malformed_candidates(self):
        client, _ = make_client(lambda request: httpx.Response(200, json={"candidates": ["not-a-dict"]}))

        with pytest.raises(UpstreamUnavailable):
            client.generate("write it")

    def test_chat_sends_history_and_parses(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=model_reply('{"message": "Which platform?", "currentLayer": 4, "isComplete": false}'))

        client, _ = make_client(handler)

        reply = client.chat("Demo clips", {"goal": "sales"}, [ChatMessage(role="user", text="It is for TikTok")])

        assert reply["currentLayer"] == 4
        contents = seen["body"]["contents"]
        assert "Demo clips" in contents[0]["parts"][0]["text"]
        assert '"goal": "sales"' in contents[0]["parts"][0]["text"]
        assert contents[1]["role"] == "model"
        assert contents[-1] == {"role": "user", "parts": [{"text": "It is for TikTok"}]}

    def test_chat_starts_briefing_without_history(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=model_reply("Hello"))

        client, _ = make_client(handler)
        client.chat(None, None, [])

        assert seen["body"]["contents"][-1]["parts"][0]["text"] == "Start the briefing"

    def test_summarize_retries_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(json.loads(request.content))
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"body": {"summary": "ok"}})

        client, sleeps = make_client(handler, max_retries=3, retry_backoff=2.0)

        assert client.summarize([{"url": "u"}]) == {"body": {"summary": "ok"}}
        assert len(calls) == 3
        assert calls[0] == {"files": [{"url": "u"}]}
        assert sleeps == [2.0, 4.0]

    def test_summarize_gives_up(self):
        client, sleeps = make_client(lambda request: httpx.Response(500), max_retries=2, retry_backoff=1.0)

        with pytest.raises(UpstreamUnavailable):
            client.summarize([{"url": "u"}])
        assert sleeps == [1.0]

    def test_summarize_not_configured(self):
        client, _ = make_client(lambda request: httpx.Response(200), summary_url=None)

        with pytest.raises(ServiceNotConfigured):
            client.summarize([{"url": "u"}])
