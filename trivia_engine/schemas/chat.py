"""
Pydantic schemas for the chat-completion backend contract
"""
from pydantic import BaseModel
from typing import List, Literal, Optional


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model: str
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage


class ChatResponse(BaseModel):
    id: str
    choices: List[ChatChoice]
    model: Optional[str] = None

    @property
    def content(self) -> str:
        """Text of the first choice, empty when the backend returned none"""
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""
