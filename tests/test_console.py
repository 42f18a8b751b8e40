import json
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import ServiceRequestError

from conftest import FakeSearchBackend
from vector_demo.console import Command, Controller, render_error, render_outcome
from vector_demo.errors import BackendError, ChatError
from vector_demo.rag import STRATEGIES, SearchMode
from vector_demo.rag.models import Answer, SearchOutcome, SearchResult
from vector_demo.rag.vector_store import SearchIndexGateway


def scripted(*answers):
    replies = iter(answers)
    return lambda prompt: next(replies)


def make_controller(settings, embedder, backend, *answers):
    chat = MagicMock()
    chat.complete = AsyncMock(return_value="Hi, I am Eddie AI")
    chat.complete_with_data = AsyncMock(return_value="Cosmos DB is globally distributed")
    return Controller(settings, embedder, backend, chat, ask=scripted(*answers))


def test_render_zero_results(capsys):
    render_outcome(SearchOutcome(mode="vector"))

    assert capsys.readouterr().out.strip().endswith("Total Results: 0")


def test_render_semantic_outcome(capsys):
    outcome = SearchOutcome(
        mode="semantic_hybrid",
        results=[SearchResult(title="Azure Cosmos DB", score=0.03, reranker_score=2.7, caption="<em>globally</em>")],
        answers=[Answer(key="1", text="A globally distributed database")],
    )

    render_outcome(outcome)

    out = capsys.readouterr().out
    assert out.index("Answer Text: A globally distributed database") < out.index("Azure Cosmos DB")
    assert "Reranker Score: 2.7" in out
    assert "Score: 0.03" in out
    assert "Caption: <em>globally</em>" in out
    assert "Total Results: 1" in out


def test_render_degraded_outcome(capsys):
    render_outcome(SearchOutcome(mode="semantic_hybrid", degraded=True, detail="not enabled"))

    out = capsys.readouterr().out
    assert "Semantic ranking unavailable (not enabled)" in out
    assert "Total Results: 0" in out


def test_render_error_is_distinct_from_empty(capsys):
    render_error(BackendError("Index not found", status_code=404))

    out = capsys.readouterr().out
    assert out.strip() == "Search failed (404): Index not found"
    assert "Total Results" not in out


@pytest.mark.asyncio
async def test_build_index_uploads_documents(settings, embedder, sample_documents):
    with open(settings.documents_path, "w", encoding="utf-8") as f:
        json.dump(sample_documents, f)
    backend = FakeSearchBackend()
    controller = make_controller(settings, embedder, backend)

    assert await controller.build_index() == len(sample_documents)
    assert backend.schemas[0].name == "idx"


@pytest.mark.asyncio
async def test_menu_runs_vector_search(settings, embedder, sample_documents, capsys):
    backend = FakeSearchBackend()
    controller = make_controller(settings, embedder, backend, "1", "distributed database", "n")
    with open(settings.documents_path, "w", encoding="utf-8") as f:
        json.dump(sample_documents, f)
    await controller.build_index()

    await controller.run()

    out = capsys.readouterr().out
    assert "Result 1 - Title: Azure Cosmos DB" in out
    assert "Total Results:" in out


@pytest.mark.asyncio
async def test_menu_reports_invalid_filter_and_continues(settings, embedder, capsys):
    backend = FakeSearchBackend()
    controller = make_controller(
        settings, embedder, backend,
        "2", "database", "category ==== x", "",
        "9", "n",
    )

    await controller.run()

    out = capsys.readouterr().out
    assert "Search failed (400)" in out
    assert "Invalid choice." in out


@pytest.mark.asyncio
@pytest.mark.parametrize("command, expected", [
    (Command.CHAT, "Hi, I am Eddie AI"),
    (Command.CHAT_WITH_DATA, "Cosmos DB is globally distributed"),
])
async def test_chat_commands(settings, embedder, capsys, command, expected):
    controller = make_controller(settings, embedder, FakeSearchBackend())

    await controller.dispatch(command, "Tell me about Cosmos DB")

    assert capsys.readouterr().out.strip() == f"AI'S RESPONSE:  {expected}"


def test_render_chat_error(capsys):
    render_error(ChatError("Chat completion timed out after 30.0s"))

    assert capsys.readouterr().out.strip() == "Chat failed: Chat completion timed out after 30.0s"


@pytest.mark.asyncio
async def test_menu_reports_chat_failure_and_continues(settings, embedder, capsys):
    controller = make_controller(settings, embedder, FakeSearchBackend(), "5", "hello", "n")
    controller.chat.complete = AsyncMock(side_effect=ChatError("Chat completion failed: deployment not found"))

    await controller.run()

    out = capsys.readouterr().out
    assert "Chat failed: Chat completion failed: deployment not found" in out
    assert "Search failed" not in out


@pytest.mark.asyncio
async def test_menu_survives_connection_failure(settings, embedder, capsys):
    index_client = MagicMock()
    search_client = MagicMock()
    search_client.search = AsyncMock(side_effect=ServiceRequestError("Name or service not known"))
    gateway = SearchIndexGateway(index_client, search_client, timeout=1.0)
    controller = Controller(settings, embedder, gateway, MagicMock(), ask=scripted("1", "database", "n"))

    await controller.run()

    assert "Search failed: Could not reach the search service (search): Name or service not known" in capsys.readouterr().out


@pytest.mark.asyncio
@pytest.mark.parametrize("command, mode", [
    (Command.VECTOR_SEARCH, SearchMode.VECTOR),
    (Command.HYBRID_SEARCH, SearchMode.HYBRID),
    (Command.SEMANTIC_HYBRID_SEARCH, SearchMode.SEMANTIC_HYBRID),
])
async def test_search_commands_use_strategy_table(settings, embedder, monkeypatch, capsys, command, mode):
    strategy = AsyncMock(return_value=SearchOutcome(mode=mode.value))
    monkeypatch.setitem(STRATEGIES, mode, strategy)
    backend = FakeSearchBackend()
    controller = make_controller(settings, embedder, backend)

    await controller.dispatch(command, "database")

    assert strategy.await_args.args == ("database", embedder, backend)
    assert "Total Results: 0" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_filtered_command_asks_for_filter(settings, embedder, monkeypatch):
    strategy = AsyncMock(return_value=SearchOutcome(mode=SearchMode.FILTERED_VECTOR.value))
    monkeypatch.setitem(STRATEGIES, SearchMode.FILTERED_VECTOR, strategy)
    controller = make_controller(settings, embedder, FakeSearchBackend(), "category eq 'Databases'")

    await controller.dispatch(Command.FILTERED_VECTOR_SEARCH, "database")

    assert strategy.await_args.kwargs == {"filter_expression": "category eq 'Databases'"}


@pytest.mark.asyncio
async def test_prompt_reads_off_the_event_loop(settings, embedder):
    threads = []

    def ask(message):
        threads.append(threading.get_ident())
        return "y"

    controller = Controller(settings, embedder, FakeSearchBackend(), MagicMock(), ask=ask)

    assert await controller.prompt("Continue? ") == "y"
    assert threads and threads[0] != threading.get_ident()
