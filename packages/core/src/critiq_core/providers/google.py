from __future__ import annotations

import logging

from critiq_core.errors import BadStatusError, DispatchTimeout, NetworkError
from critiq_core.providers.base import BaseReviewer

logger = logging.getLogger(__name__)


class GoogleReviewer(BaseReviewer):
    MODEL = "gemini-2.5-flash"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        try:
            from google import genai
        except ImportError:
            raise ImportError(
                "The 'google-genai' package is required for this provider. "
                "Install it with: pip install 'critiq[google]'"
            )
        super().__init__(**kwargs)
        client_kwargs = {"api_key": api_key}
        if base_url:
            # The SDK appends the API version and model path itself.
            client_kwargs["http_options"] = genai.types.HttpOptions(base_url=base_url.split("/v1beta/")[0])
        self.client = genai.Client(**client_kwargs)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        import httpx
        from google.genai import errors, types

        try:
            resp = self.client.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=[types.Part(text=user_prompt)])],
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=self.TEMPERATURE,
                    max_output_tokens=self.max_tokens,
                ),
            )
        except errors.APIError as e:
            raise BadStatusError(str(e), e.code) from e
        except httpx.TimeoutException as e:
            raise DispatchTimeout(str(e)) from e
        except httpx.TransportError as e:
            raise NetworkError(str(e)) from e

        return (resp.text or "").strip()
