"""
Chat-completion client
Groq exposes an OpenAI-compatible endpoint, so the OpenAI SDK is pointed at it
"""

import logging
import time
from typing import List, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from rancho_assistant.errors import CompletionError

logger = logging.getLogger(__name__)


class ChatCompleter:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def complete(self, system_prompt: str, user_message: str, temperature: Optional[float] = None) -> str:
        """Return the trimmed text of the first choice"""
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        started = time.time()
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=self.max_tokens,
                messages=messages,
            )
        except OpenAIError as e:
            logger.error(f"❌ Completion failed: {e}")
            raise CompletionError("Chat completion failed") from e
        elapsed_ms = int((time.time() - started) * 1000)
        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""
        logger.info(f"Completion model={self.model} ms={elapsed_ms} chars={len(content)}")
        return content.strip()
