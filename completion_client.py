# completion_client.py — Cliente de chat completions (Azure OpenAI) de larga vida
import logging
from typing import Any, Dict, Optional

import httpx

from bot_backend.errors import CompletionServiceError
from bot_backend.prompts import CompletionRequest

log = logging.getLogger("echo_bot.completion")


class AzureChatCompletionClient:
    """
    Un solo cliente por proceso: se crea al arrancar y se inyecta en el bot.
    El httpx.AsyncClient reutiliza conexiones entre turnos.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str = "gpt-35-turbo",
        api_version: str = "2024-02-01",
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not endpoint:
            raise ValueError("AZURE_OPENAI_ENDPOINT no está definido")
        if not api_key:
            raise ValueError("AZURE_OPENAI_API_KEY no está definido")
        self.endpoint = endpoint.rstrip("/")
        self.deployment = deployment
        self.api_version = api_version
        self._http = httpx.AsyncClient(
            base_url=self.endpoint,
            headers={"api-key": api_key},
            timeout=timeout,
            transport=transport,
        )

    @property
    def path(self) -> str:
        return f"/openai/deployments/{self.deployment}/chat/completions"

    def _payload(self, request: CompletionRequest) -> Dict[str, Any]:
        return {
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "top_p": request.top_p,
        }

    async def complete(self, request: CompletionRequest) -> str:
        try:
            r = await self._http.post(
                self.path,
                params={"api-version": self.api_version},
                json=self._payload(request),
            )
        except httpx.TimeoutException as e:
            raise CompletionServiceError("timeout", f"timeout llamando a {self.deployment}: {e}") from e
        except httpx.HTTPError as e:
            raise CompletionServiceError("service", f"error de transporte: {e!r}") from e

        if r.status_code in (401, 403):
            raise CompletionServiceError("auth", "credenciales rechazadas", r.status_code)
        if r.status_code == 429:
            raise CompletionServiceError("rate_limit", "cuota/rate limit excedido", r.status_code)
        if r.status_code >= 400:
            raise CompletionServiceError("service", r.text[:500], r.status_code)

        try:
            data = r.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionServiceError("malformed", f"respuesta inesperada: {e!r}", r.status_code) from e
        if not isinstance(content, str):
            raise CompletionServiceError("malformed", "respuesta sin texto", r.status_code)

        usage = data.get("usage") or {}
        log.info(
            "completion ok: deployment=%s prompt_tokens=%s completion_tokens=%s",
            self.deployment, usage.get("prompt_tokens"), usage.get("completion_tokens"),
        )
        return content

    async def aclose(self) -> None:
        await self._http.aclose()
