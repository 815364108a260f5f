"""Chat Manager for answering hospital questions with OpenAI file search."""


from typing import Dict, Any, List, Optional, AsyncGenerator

from openai import AsyncOpenAI, OpenAIError
import tiktoken

from app.settings.v1.openai import OpenAISettings
from app.core.v1.exceptions import CompletionException, CompletionNotConfiguredException
from app.core.v1.language_manager import system_instruction
from app.core.v1.log_manager import LogManager


class ChatManager:
    """
    Chat Manager for the hosted completion service.

    Answers are grounded on the hospital documents through the Responses API
    ``file_search`` tool over the configured vector store.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        """Initialize Chat Manager with OpenAI client.

        Args:
            client: Pre-built client; when None one is created if an API key
                is configured.
        """
        self.logger = LogManager(__name__)

        # Get OpenAI configuration
        openai_settings = OpenAISettings()

        if client is None and openai_settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=openai_settings.OPENAI_API_KEY,
                base_url=openai_settings.OPENAI_BASE_URL or None
            )
        self.client = client

        # Chat configuration
        self.chat_model = openai_settings.CHAT_MODEL
        self.max_tokens = openai_settings.MAX_TOKENS
        self.temperature = openai_settings.TEMPERATURE
        self.max_conversation_history = openai_settings.MAX_CONVERSATION_HISTORY
        self.context_window_size = openai_settings.CONTEXT_WINDOW_SIZE
        self.vector_store_id = openai_settings.OPENAI_VECTOR_STORE_ID
        self.file_search_max_results = openai_settings.FILE_SEARCH_MAX_RESULTS

        self._encoder = None

        self.logger.info(
            "Chat Manager initialized successfully",
            model=self.chat_model,
            configured=self.is_configured,
            file_search=bool(self.vector_store_id)
        )

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    @property
    def tiktoken_encoder(self):
        """Token encoder, loaded on first use."""
        if self._encoder is None:
            try:
                self._encoder = tiktoken.encoding_for_model(self.chat_model)
            except KeyError:
                # Fallback to o200k encoding if model not found
                self._encoder = tiktoken.get_encoding("o200k_base")
        return self._encoder

    def _prepare_messages(
        self,
        conversation_history: List[Dict[str, str]],
        user_question: str
    ) -> List[Dict[str, str]]:
        """
        Prepare input messages for the Responses API.

        Args:
            conversation_history: Previous ``{role, content}`` messages
            user_question: Current user question

        Returns:
            History (limited to max_conversation_history) plus the question
        """
        recent_history = conversation_history[-self.max_conversation_history:] if conversation_history else []

        messages = [
            {"role": item["role"], "content": item["content"]}
            for item in recent_history
            if item.get("content")
        ]
        messages.append({"role": "user", "content": user_question})

        return messages

    def _calculate_token_count(self, instructions: str, messages: List[Dict[str, str]]) -> int:
        """
        Calculate token count for instructions and messages using tiktoken.

        Returns:
            Token count, or a character-based estimate if encoding fails
        """
        try:
            total_tokens = len(self.tiktoken_encoder.encode(instructions))

            for message in messages:
                # ~4 tokens of formatting overhead per message
                total_tokens += len(self.tiktoken_encoder.encode(message["role"]))
                total_tokens += len(self.tiktoken_encoder.encode(message["content"])) + 4

            return total_tokens + 3

        except Exception as e:
            self.logger.warning(f"Error calculating token count: {e}")
            total_chars = len(instructions) + sum(len(msg["content"]) for msg in messages)
            return total_chars // 4

    def _truncate_messages(self, instructions: str, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """
        Drop the oldest history until the input fits the context window.

        The current question (last message) is always kept.
        """
        while len(messages) > 1 and self._calculate_token_count(instructions, messages) > self.context_window_size:
            messages.pop(0)

        return messages

    def _tools(self) -> List[Dict[str, Any]]:
        if not self.vector_store_id:
            return []
        return [{
            "type": "file_search",
            "vector_store_ids": [self.vector_store_id],
            "max_num_results": self.file_search_max_results
        }]

    def _request(
        self,
        user_question: str,
        conversation_history: Optional[List[Dict[str, str]]],
        language: str
    ) -> Dict[str, Any]:
        if not self.is_configured:
            raise CompletionNotConfiguredException("OpenAI API key is not configured")

        instructions = system_instruction(language)
        messages = self._truncate_messages(
            instructions,
            self._prepare_messages(conversation_history or [], user_question)
        )

        self.logger.info(
            "Prepared completion request",
            language=language,
            history_count=len(messages) - 1,
            estimated_tokens=self._calculate_token_count(instructions, messages)
        )

        return {
            "model": self.chat_model,
            "instructions": instructions,
            "input": messages,
            "tools": self._tools(),
            "max_output_tokens": self.max_tokens,
            "temperature": self.temperature
        }

    async def get_chat_response(
        self,
        user_question: str,
        conversation_history: List[Dict[str, str]] = None,
        language: str = "th"
    ) -> str:
        """
        Get complete chat response (non-streaming).

        Args:
            user_question: User's question
            conversation_history: Previous ``{role, content}`` messages
            language: Language to answer in

        Returns:
            Complete chat response

        Raises:
            CompletionException: If the service is not configured or fails
        """
        request = self._request(user_question, conversation_history, language)

        try:
            response = await self.client.responses.create(**request)
        except OpenAIError as err:
            self.logger.error(f"Error getting chat response: {err}")
            raise CompletionException(f"Chat completion failed: {err}") from err

        content = response.output_text
        if not content:
            raise CompletionException("No response content received from OpenAI")

        self.logger.info(
            "Chat response completed",
            response_length=len(content),
            tokens_used=response.usage.total_tokens if response.usage else 0
        )

        return content

    async def stream_chat_response(
        self,
        user_question: str,
        conversation_history: List[Dict[str, str]] = None,
        language: str = "th"
    ) -> AsyncGenerator[str, None]:
        """
        Stream chat response text deltas.

        Yields:
            str: Next piece of the answer

        Raises:
            CompletionException: If the service is not configured or fails
        """
        request = self._request(user_question, conversation_history, language)

        full_length = 0
        try:
            stream = await self.client.responses.create(stream=True, **request)

            async for event in stream:
                if event.type == "response.output_text.delta" and event.delta:
                    full_length += len(event.delta)
                    yield event.delta
                elif event.type in ("error", "response.failed"):
                    raise CompletionException(f"Chat streaming failed: {event.type}")

        except OpenAIError as err:
            self.logger.error(f"Error in streaming chat response: {err}")
            raise CompletionException(f"Chat streaming failed: {err}") from err

        self.logger.info("Streaming chat response completed", response_length=full_length)
