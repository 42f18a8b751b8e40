import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import AzureChatOpenAI
from pydantic import BaseModel, Field

from vector_demo.chat.prompts import CHAT_SYSTEM_PROMPT, GREETING_ANSWER, GREETING_QUESTION
from vector_demo.config import Settings
from vector_demo.errors import ChatError

logger = logging.getLogger(__name__)


class SearchDataSource(BaseModel):
    """Search index the chat service retrieves from on its own."""
    endpoint: str = Field(..., description="Azure AI Search endpoint")
    index_name: str = Field(..., description="Index to ground answers on")
    key: str = Field(..., description="Azure AI Search key")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": "azure_search",
            "parameters": {
                "endpoint": self.endpoint,
                "index_name": self.index_name,
                "authentication": {"type": "api_key", "key": self.key},
            },
        }


class ChatBridge:
    """Two chat modes over one Azure OpenAI chat deployment.

    ``complete`` is a plain persona conversation. ``complete_with_data``
    attaches the search index as a data source so the chat service
    retrieves and grounds its answer itself.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        data_source: Optional[SearchDataSource] = None,
        timeout: Optional[float] = None,
    ):
        self._llm = llm
        self.data_source = data_source
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatBridge":
        llm = AzureChatOpenAI(
            azure_deployment=settings.chat_deployment,
            azure_endpoint=settings.openai_endpoint,
            api_key=settings.openai_api_key,
            api_version=settings.openai_api_version,
        )
        data_source = SearchDataSource(
            endpoint=settings.search_endpoint,
            index_name=settings.index_name,
            key=settings.search_key,
        )
        return cls(llm, data_source, settings.request_timeout)

    def build_messages(self, prompt: str, history: Optional[Sequence[BaseMessage]] = None) -> List[BaseMessage]:
        return [
            SystemMessage(content=CHAT_SYSTEM_PROMPT),
            HumanMessage(content=GREETING_QUESTION),
            AIMessage(content=GREETING_ANSWER),
            *(history or []),
            HumanMessage(content=prompt),
        ]

    async def _invoke(self, runnable, messages: List[BaseMessage]) -> str:
        try:
            response = await asyncio.wait_for(runnable.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ChatError(f"Chat completion timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error("Chat completion failed: %s", e)
            raise ChatError(f"Chat completion failed: {e}") from e
        content = response.content
        return content.strip() if isinstance(content, str) else str(content)

    async def complete(self, prompt: str, history: Optional[Sequence[BaseMessage]] = None) -> str:
        return await self._invoke(self._llm, self.build_messages(prompt, history))

    async def complete_with_data(self, prompt: str) -> str:
        if self.data_source is None:
            raise ChatError("No search data source configured")
        grounded = self._llm.bind(
            temperature=0,
            max_tokens=1000,
            top_p=1.0,
            extra_body={"data_sources": [self.data_source.to_payload()]},
        )
        logger.info("Chat completion grounded on index %s", self.data_source.index_name)
        return await self._invoke(grounded, [HumanMessage(content=prompt)])
