import asyncio

import pytest

from conftest import FakeCompletionClient, make_dispatcher
from core.errors import ErrorKind
from core.schemas import MessageRole
from tools.chat_session import ChatSession


@pytest.fixture()
def session(dispatcher):
    return ChatSession(dispatcher, case_id="case-1", active_document_id="doc-1")


@pytest.mark.asyncio
async def test_send_streams_into_the_assistant_placeholder(session) -> None:
    seen = []
    response = await session.send("What is a lien?", on_chunk=seen.append)

    assert response.success is True
    assert seen == ["Hel", "lo, ", "world"]
    user, assistant = session.messages
    assert user.role is MessageRole.USER and user.document_context == ["doc-1"]
    assert assistant.content == "Hello, world"
    assert assistant.is_streaming is False
    assert session.is_busy is False


@pytest.mark.asyncio
async def test_new_conversation_id_is_adopted(session) -> None:
    response = await session.send("Hello")

    assert session.conversation_id == response.new_conversation_id
    assert all(m.conversation_id == session.conversation_id for m in session.messages)

    second = await session.send("Hello again")
    assert second.new_conversation_id is None


@pytest.mark.asyncio
async def test_blank_input_is_ignored(session) -> None:
    assert await session.send("   ") is None
    assert session.messages == []


@pytest.mark.asyncio
async def test_failed_turn_becomes_an_error_message(session) -> None:
    session.case_id = None
    response = await session.send("/agent draft a letter")

    assert response.error_kind is ErrorKind.MISSING_PRECONDITION
    assistant = session.messages[-1]
    assert assistant.role is MessageRole.ERROR
    assert assistant.content == f"Error: {response.error}"


@pytest.mark.asyncio
async def test_use_template_sets_pending_template_without_placeholder(session) -> None:
    response = await session.send("/use Engagement Letter")

    assert response.success is True
    assert session.pending_template_id == "tpl-1"
    assert [m.role for m in session.messages] == [MessageRole.USER]


@pytest.mark.asyncio
async def test_stop_cancels_the_running_turn(store, registry) -> None:
    client = FakeCompletionClient(chunks=["one ", "two ", "three"])
    session = ChatSession(make_dispatcher(client, store, registry))

    def on_chunk(chunk):
        session.stop()

    response = await session.send("/research laches", on_chunk=on_chunk)

    assert response.error_kind is ErrorKind.CANCELLED
    assistant = session.messages[-1]
    assert assistant.role is MessageRole.ASSISTANT
    assert assistant.content == "one "


def test_stop_with_nothing_running(session) -> None:
    assert session.stop() is False


@pytest.mark.asyncio
async def test_regenerate_replaces_the_last_answer(session, client, store) -> None:
    await session.send("What is a lien?")
    client.chunks = ["A ", "security ", "interest."]

    response = await session.regenerate()

    assert response.success is True
    assert [m.role for m in session.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert session.messages[-1].content == "A security interest."
    rows = await store.get_messages(session.conversation_id)
    assert [(m.role, m.content) for m in rows] == [
        (MessageRole.USER, "What is a lien?"),
        (MessageRole.ASSISTANT, "A security interest."),
    ]
    assert client.prompt_text().count("What is a lien?") == 1


@pytest.mark.asyncio
async def test_regenerate_without_history(session) -> None:
    assert await session.regenerate() is None


@pytest.mark.asyncio
async def test_new_chat_clears_state(session, store) -> None:
    await session.send("Hello")
    session.new_chat()

    assert session.messages == [] and session.conversation_id is None
    await session.send("Hello again")
    assert store.create_calls == 2


@pytest.mark.asyncio
async def test_help_message_is_shown_in_the_placeholder(session) -> None:
    await session.send("/agent help")
    assert "Available commands" in session.messages[-1].content


@pytest.mark.asyncio
async def test_second_send_is_refused_while_a_turn_runs(session) -> None:
    first = asyncio.ensure_future(session.send("What is a lien?"))
    await asyncio.sleep(0)

    assert session.is_busy is True
    assert await session.send("Another question") is None
    assert session.stop() is True

    response = await first
    assert response.error_kind is ErrorKind.CANCELLED
    assert [m.content for m in session.messages if m.role is MessageRole.USER] == ["What is a lien?"]


@pytest.mark.asyncio
async def test_selection_is_attached_to_selection_commands(session, client) -> None:
    session.selected_text = "Landlord may terminate on 10 days notice."

    response = await session.send("/agent rewrite in plain English")

    assert response.success is True
    assert "Landlord may terminate on 10 days notice." in client.prompt_text()
    assert "in plain English" in client.prompt_text()


@pytest.mark.asyncio
async def test_selection_command_without_selection_fails(session, client) -> None:
    response = await session.send("/agent summarize")

    assert response.error == "Selected text is required for /agent summarize."
    assert session.messages[-1].role is MessageRole.ERROR
    assert client.calls == []
