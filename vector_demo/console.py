"""
Interactive console for the search demo.
"""

import argparse
import asyncio
import logging
from enum import IntEnum
from typing import Callable, Optional

from vector_demo.chat import ChatBridge
from vector_demo.config import Settings, load_settings
from vector_demo.errors import BackendError, ChatError, ConfigurationError, VectorDemoError
from vector_demo.rag import (
    STRATEGIES,
    DocumentEnricher,
    Embedder,
    SearchIndexGateway,
    SearchMode,
    SearchOutcome,
    build_schema,
    index_documents,
    load_documents,
)

logger = logging.getLogger(__name__)

Ask = Callable[[str], str]


class Command(IntEnum):
    VECTOR_SEARCH = 1
    FILTERED_VECTOR_SEARCH = 2
    HYBRID_SEARCH = 3
    SEMANTIC_HYBRID_SEARCH = 4
    CHAT = 5
    CHAT_WITH_DATA = 6


MENU = {
    Command.VECTOR_SEARCH: "Single Vector Search",
    Command.FILTERED_VECTOR_SEARCH: "Single Vector Search with Filter",
    Command.HYBRID_SEARCH: "Simple Hybrid Search",
    Command.SEMANTIC_HYBRID_SEARCH: "Semantic Hybrid Search",
    Command.CHAT: "Chat",
    Command.CHAT_WITH_DATA: "Chat with your own data",
}

SEARCH_COMMANDS = {
    Command.VECTOR_SEARCH: SearchMode.VECTOR,
    Command.FILTERED_VECTOR_SEARCH: SearchMode.FILTERED_VECTOR,
    Command.HYBRID_SEARCH: SearchMode.HYBRID,
    Command.SEMANTIC_HYBRID_SEARCH: SearchMode.SEMANTIC_HYBRID,
}


def render_outcome(outcome: SearchOutcome) -> None:
    semantic = outcome.mode == SearchMode.SEMANTIC_HYBRID.value
    if semantic:
        print("Semantic Hybrid Search Results:\n")
        if outcome.answers:
            print("Query Answer:")
            for answer in outcome.answers:
                print(f"Answer Highlights: {answer.highlights}")
                print(f"Answer Text: {answer.text}\n")

    for count, result in enumerate(outcome.results, start=1):
        print("----------------------------------------")
        print(f"Result {count} - Title: {result.title}")
        if semantic:
            print(f"Reranker Score: {result.reranker_score}")
        print(f"Score: {result.score}")
        print(f"Content: {result.content}")
        print(f"Category: {result.category}\n")
        if result.caption:
            print(f"Caption: {result.caption}\n")

    if outcome.degraded:
        print(f"Semantic ranking unavailable ({outcome.detail})")
    print(f"Total Results: {outcome.total_count}")


def render_error(error: VectorDemoError) -> None:
    if isinstance(error, ChatError):
        print(f"Chat failed: {error}")
    elif isinstance(error, BackendError) and error.status_code is not None:
        print(f"Search failed ({error.status_code}): {error}")
    else:
        print(f"Search failed: {error}")


class Controller:
    """Dispatch menu commands to retrieval strategies and chat modes."""

    def __init__(
        self,
        settings: Settings,
        embedder: Embedder,
        gateway: SearchIndexGateway,
        chat: ChatBridge,
        ask: Ask = input,
    ):
        self.settings = settings
        self.embedder = embedder
        self.gateway = gateway
        self.chat = chat
        self.ask = ask

    async def build_index(self, documents_path: Optional[str] = None) -> int:
        documents = load_documents(documents_path or self.settings.documents_path)
        schema = build_schema(
            self.settings.index_name,
            self.settings.embedding_dimensions,
            semantic_configuration_name=self.settings.semantic_configuration_name,
        )
        enricher = DocumentEnricher(self.embedder, self.settings.max_concurrency)
        count = await index_documents(self.gateway, enricher, documents, schema=schema)
        print(f"Search index {schema.name} created, {count} documents uploaded.")
        return count

    async def prompt(self, message: str) -> str:
        """Read a line without blocking the event loop."""
        return await asyncio.to_thread(self.ask, message)

    async def dispatch(self, command: Command, query: str) -> None:
        if command == Command.CHAT:
            print("AI'S RESPONSE:  " + await self.chat.complete(query))
            return
        if command == Command.CHAT_WITH_DATA:
            print("AI'S RESPONSE:  " + await self.chat.complete_with_data(query))
            return

        mode = SEARCH_COMMANDS[command]
        options = {}
        if mode == SearchMode.FILTERED_VECTOR:
            options["filter_expression"] = await self.prompt(
                "Enter a filter for the search (e.g., category eq 'Databases'): "
            )
        elif mode == SearchMode.SEMANTIC_HYBRID:
            options["configuration_name"] = self.settings.semantic_configuration_name
        render_outcome(await STRATEGIES[mode](query, self.embedder, self.gateway, **options))

    async def run(self) -> None:
        while True:
            print("Choose a query approach:")
            for command, label in MENU.items():
                print(f"{command.value}. {label}")

            choice = (await self.prompt("Enter the number of the option: ")).strip()
            try:
                command = Command(int(choice))
            except ValueError:
                print("Invalid choice.")
                command = None

            if command is not None:
                query = await self.prompt("Type a search query or prompt: ")
                try:
                    await self.dispatch(command, query)
                except VectorDemoError as e:
                    render_error(e)

            response = await self.prompt("Press Enter to continue, or type 'n' to exit: ")
            if response.strip().lower() == "n":
                break


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vector, hybrid and semantic search over Azure AI Search.")
    parser.add_argument("--settings", help="JSON settings file (default: local.settings.json).")
    parser.add_argument("--documents", help="JSON file with the documents to index.")
    parser.add_argument(
        "--build-index",
        action="store_true",
        help="Create the index and upload documents without asking first.",
    )
    return parser


async def main(argv=None) -> None:
    args = _build_parser().parse_args(argv)
    settings = load_settings(args.settings)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async with SearchIndexGateway.from_settings(settings) as gateway:
        controller = Controller(
            settings,
            Embedder.from_settings(settings),
            gateway,
            ChatBridge.from_settings(settings),
        )
        build = args.build_index or (await controller.prompt(
            "Would you like to create the search index and upload the documents (y/n)? "
        )).strip().lower() == "y"
        if build:
            try:
                await controller.build_index(args.documents)
            except VectorDemoError as e:
                print(f"Indexing failed: {e}")
        await controller.run()


def run() -> None:
    try:
        asyncio.run(main())
    except ConfigurationError as e:
        raise SystemExit(f"Configuration error: {e}")
    except KeyboardInterrupt:
        pass
