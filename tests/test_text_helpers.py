from __future__ import annotations

from yips.core.prompt import PROTOCOL_SYSTEM_PROMPT, compose_chat_request_messages
from yips.core.tokens import compute_tokens_per_second, estimate_conversation_tokens, estimate_text_tokens
from yips.core.types import ChatMessage
from yips.tools.diff import build_diff_preview


def test_diff_of_identical_text() -> None:
    assert build_diff_preview("same", "same") == "No content changes."


def test_diff_trims_common_lines() -> None:
    preview = build_diff_preview("a\nb\nc\n", "a\nB\nc\n")

    assert preview.splitlines() == ["--- before", "+++ after", "@@ -2,1 +2,1 @@", "-b", "+B"]


def test_diff_of_new_file() -> None:
    preview = build_diff_preview("", "one\ntwo")

    assert preview.splitlines() == ["--- before", "+++ after", "@@ -1,1 +1,2 @@", "-", "+one", "+two"]


def test_diff_truncates_long_bodies() -> None:
    after = "\n".join(str(idx) for idx in range(10))

    preview = build_diff_preview("", after, max_body_lines=4)

    lines = preview.splitlines()
    assert len(lines) == 3 + 4 + 1
    assert lines[-1] == "... truncated 7 additional diff lines ..."


def test_token_estimates() -> None:
    assert estimate_text_tokens("") == 0
    assert estimate_text_tokens("abc") == 1
    assert estimate_text_tokens("abcdefghi") == 3
    messages = [ChatMessage(role="user", content="abcd"), ChatMessage(role="assistant", content="abcdefgh")]
    assert estimate_conversation_tokens(messages) == 3


def test_tokens_per_second() -> None:
    assert compute_tokens_per_second(50, 2000) == 25.0
    assert compute_tokens_per_second(0, 2000) is None
    assert compute_tokens_per_second(50, 0) is None


def test_protocol_prompt_lists_allowed_names() -> None:
    assert "```yips-agent" in PROTOCOL_SYSTEM_PROMPT
    assert "preview_edit_file" in PROTOCOL_SYSTEM_PROMPT
    assert "virtual_terminal" in PROTOCOL_SYSTEM_PROMPT


def test_compose_chat_request_messages() -> None:
    history = [ChatMessage(role="user", content="hi")]

    bare = compose_chat_request_messages(history)
    with_context = compose_chat_request_messages(history, "repo: yips")

    assert [message.content for message in bare] == [PROTOCOL_SYSTEM_PROMPT, "hi"]
    assert with_context[1] == ChatMessage(role="system", content="repo: yips")
    assert len(with_context) == 3
