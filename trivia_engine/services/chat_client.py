"""
Chat-completion clients for the generation backend (OpenRouter and Gemini)
"""
import logging
import uuid
from typing import List, Optional, Protocol, Tuple

import google.generativeai as genai
import httpx
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from trivia_engine.config import Settings
from trivia_engine.errors import ChatTransportError
from trivia_engine.schemas.chat import ChatChoice, ChatMessage, ChatRequest, ChatResponse

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    async def chat(self, request: ChatRequest) -> ChatResponse:
        ...


class OpenRouterChatClient:
    """OpenAI-compatible chat completions over HTTP"""

    def __init__(
        self,
        api_key: str,
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        title: str = "Trivia Engine",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.title = title
        self.timeout = timeout
        self._transport = transport

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """
        Send one chat request

        Raises:
            ChatTransportError: on non-2xx status, connection failure, or a
                body that is not a chat completion
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": self.title,
        }
        payload = request.model_dump(exclude_none=True)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ChatTransportError(None, str(e)) from e

        if response.status_code < 200 or response.status_code >= 300:
            raise ChatTransportError(response.status_code, response.text or response.reason_phrase)

        try:
            return ChatResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ChatTransportError(response.status_code, f"Unreadable chat response: {response.text[:200]}") from e


class GeminiChatClient:
    """Chat contract served by Gemini; system messages become the system instruction"""

    def __init__(self, api_key: str):
        genai.configure(api_key=api_key)

    @staticmethod
    def _split_messages(messages: List[ChatMessage]) -> Tuple[Optional[str], List[dict]]:
        system_parts = [m.content for m in messages if m.role == "system"]
        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [m.content]}
            for m in messages
            if m.role != "system"
        ]
        return ("\n".join(system_parts) or None), contents

    async def chat(self, request: ChatRequest) -> ChatResponse:
        system_instruction, contents = self._split_messages(request.messages)
        model = genai.GenerativeModel(request.model, system_instruction=system_instruction)
        config = genai.GenerationConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_tokens,
        )
        try:
            response = await model.generate_content_async(contents, generation_config=config)
            text = response.text
        except google_exceptions.GoogleAPICallError as e:
            raise ChatTransportError(getattr(e, "code", None), str(e)) from e
        except ValueError as e:
            # response.text raises when the candidate was blocked or empty
            logger.warning(f"Gemini returned no text: {str(e)}")
            text = ""

        return ChatResponse(
            id=str(uuid.uuid4()),
            choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=text))],
            model=request.model,
        )


def create_chat_client(settings: Settings) -> Optional[ChatClient]:
    """Build the configured client, or None when no credential is set"""
    api_key = settings.chat_api_key
    if not api_key:
        logger.info("No generation credential configured; local question bank only")
        return None
    if settings.CHAT_PROVIDER == "gemini":
        return GeminiChatClient(api_key)
    return OpenRouterChatClient(api_key, url=settings.OPENROUTER_URL, title=settings.APP_NAME)
