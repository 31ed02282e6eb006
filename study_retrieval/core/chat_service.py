"""
Retrieval-augmented chat for students and teachers.
Relevant study materials are appended to the system prompt before the
completion call; the completion itself is delegated to a local Ollama model.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import ollama

from ..util.logging import logger
from .exceptions import CompletionServiceError
from .retrieval_service import RetrievalService, validate_query_text
from .schema import UserRecord

BASE_SYSTEM_PROMPT = (
    "You are a helpful AI teaching assistant for students. "
    "Provide clear, educational responses."
)
CONTEXT_INTRO = (
    "\n\nYou have access to the following study materials that may be relevant "
    "to the student's question:\n\n"
)
CONTEXT_GUIDANCE = (
    "\n\nUse these materials to provide accurate, contextual answers. If the materials "
    "contain relevant information, reference them in your response. If not, provide "
    "general educational guidance."
)
FALLBACK_REPLY = "Sorry, I could not generate a response."


def build_system_prompt(material_context: str) -> str:
    """Base prompt, plus the materials section only when there is context."""
    system_prompt = BASE_SYSTEM_PROMPT
    if material_context:
        system_prompt += CONTEXT_INTRO + material_context + CONTEXT_GUIDANCE
    return system_prompt


class ChatService:
    """Builds the augmented prompt and calls the completion model."""

    def __init__(self, retrieval_service: Optional[RetrievalService], model_name: str,
                 options: Optional[Dict[str, Any]] = None, client=None):
        self.retrieval_service = retrieval_service
        self.model_name = model_name
        self.options = options or {}
        self._client = client

    def _chat(self, messages: List[Dict[str, str]]):
        if self._client is not None:
            return self._client.chat(model=self.model_name, messages=messages, options=self.options)
        return ollama.chat(model=self.model_name, messages=messages, options=self.options)

    def get_material_context(self, message: str, user: Optional[UserRecord]) -> str:
        """Context block for ``message``; students only see their own class."""
        if self.retrieval_service is None:
            return ""
        class_id = None
        if user is not None and user.is_student:
            if not user.class_id:
                return ""
            class_id = user.class_id
        return self.retrieval_service.get_context_for_ai(message, class_id=class_id)

    def reply(self, message: str, user: Optional[UserRecord] = None) -> Dict[str, str]:
        """
        Answer a chat message.

        Returns:
            {"response": reply text, "timestamp": ISO timestamp}

        Raises:
            ValueError: message missing or not a string
            CompletionServiceError: the completion call failed
        """
        validate_query_text(message)

        material_context = self.get_material_context(message, user)
        messages = [
            {'role': 'system', 'content': build_system_prompt(material_context)},
            {'role': 'user', 'content': message}
        ]

        start_time = datetime.now()
        try:
            response = self._chat(messages)
        except (ollama.ResponseError, ConnectionError) as e:
            logger.log_operation("chat.completion", "failed", {"model": self.model_name, "error": str(e)})
            raise CompletionServiceError(f"AI service temporarily unavailable: {e}") from e

        processing_time = int((datetime.now() - start_time).total_seconds() * 1000)
        content = (response.get('message') or {}).get('content') or ''

        logger.log_operation("chat.completion", "success", {
            "model": self.model_name,
            "processing_time_ms": processing_time,
            "context_used": bool(material_context),
            "response_length": len(content)
        })

        return {
            "response": content or FALLBACK_REPLY,
            "timestamp": datetime.now().isoformat()
        }
