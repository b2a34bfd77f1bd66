from __future__ import annotations

import logging

from critiq_core.errors import BadStatusError, DispatchTimeout, NetworkError
from critiq_core.providers.base import BaseReviewer

logger = logging.getLogger(__name__)


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'critiq[anthropic]'"
            )
        super().__init__(**kwargs)
        client_kwargs = {"api_key": api_key}
        if base_url:
            # The SDK appends /v1/messages itself.
            client_kwargs["base_url"] = base_url.split("/v1/")[0]
        self.client = Anthropic(**client_kwargs)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # Optional dependency; __init__ has already checked it imports.
        import anthropic
        from anthropic.types import TextBlock

        try:
            response = self.client.messages.create(
                model=self.model,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=self.TEMPERATURE,
                max_tokens=self.max_tokens,
            )
        except anthropic.APITimeoutError as e:
            raise DispatchTimeout(str(e)) from e
        except anthropic.APIConnectionError as e:
            raise NetworkError(str(e)) from e
        except anthropic.APIStatusError as e:
            raise BadStatusError(str(e), e.status_code) from e

        if response.stop_reason == "max_tokens":
            logger.warning("Anthropic response stopped at the %d token output limit", self.max_tokens)
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
