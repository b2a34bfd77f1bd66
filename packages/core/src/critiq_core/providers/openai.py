from __future__ import annotations

import logging

try:
    import openai as _openai_mod
    from openai import OpenAI as _OpenAI
except ImportError:
    _openai_mod = None  # type: ignore[assignment]
    _OpenAI = None  # type: ignore[assignment,misc]

from critiq_core.errors import BadStatusError, DispatchTimeout, NetworkError
from critiq_core.providers.base import BaseReviewer

logger = logging.getLogger(__name__)

_COMPLETIONS_PATH = "/chat/completions"


class OpenAIReviewer(BaseReviewer):
    MODEL = "gpt-4o"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. Install it with: pip install 'critiq[openai]'"
            )
        super().__init__(**kwargs)
        client_kwargs = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url.removesuffix(_COMPLETIONS_PATH)
        self.client = _OpenAI(**client_kwargs)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.TEMPERATURE,
                max_tokens=self.max_tokens,
            )
        except _openai_mod.APITimeoutError as e:
            raise DispatchTimeout(str(e)) from e
        except _openai_mod.APIConnectionError as e:
            raise NetworkError(str(e)) from e
        except _openai_mod.APIStatusError as e:
            raise BadStatusError(str(e), e.status_code) from e

        choice = response.choices[0]
        if choice.finish_reason == "length":
            logger.warning("OpenAI response stopped at the %d token output limit", self.max_tokens)
        return choice.message.content
