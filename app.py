# app.py — Echo bot con CloudAdapter (aiohttp) + completions + memoria por conversación
import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web

from botbuilder.core import MemoryStorage, Storage, TelemetryLoggerMiddleware, TurnContext
from botbuilder.schema import Activity, ActivityTypes
from botbuilder.integration.aiohttp.cloud_adapter import CloudAdapter
from botbuilder.integration.aiohttp.configuration_bot_framework_authentication import (
    ConfigurationBotFrameworkAuthentication,
)

# Telemetría (Application Insights)
from botbuilder.applicationinsights import ApplicationInsightsTelemetryClient, bot_telemetry_processor

from bot import EchoBot
from bot_backend.errors import StorageError
from bot_backend.memory import ConversationMemoryStore
from completion_client import AzureChatCompletionClient
from conectores.bf_msft_comandos import acquire_bf_token, authority_for, diagnose_activity, jwt_claims
from settings import Settings, load_settings, public_env_snapshot

log = logging.getLogger("echo_bot")


def _instrumentation_key(connection_string: str) -> Optional[str]:
    for part in connection_string.split(";"):
        k, _, v = part.partition("=")
        if k.strip().lower() == "instrumentationkey" and v.strip():
            return v.strip()
    return None


# ==========================
# Manejo global de errores
# ==========================
async def on_error(context: TurnContext, error: Exception):
    log.error("[BOT ERROR] %s", error, exc_info=error)
    try:
        await context.send_activity("The bot encountered an error or bug.")
        if context.activity.channel_id == "emulator":
            trace = Activity(
                label="TurnError",
                name="on_turn_error Trace",
                timestamp=datetime.now(timezone.utc),
                type=ActivityTypes.trace,
                value=f"{error}",
                value_type="https://www.botframework.com/schemas/error",
            )
            await context.send_activity(trace)
    except Exception as e:
        log.error("[BOT ERROR][send_activity] %s", e, exc_info=True)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    completion_client=None,
) -> web.Application:
    settings = settings or load_settings()

    auth = ConfigurationBotFrameworkAuthentication(settings.bot_framework_config())
    adapter = CloudAdapter(auth)
    adapter.on_turn_error = on_error

    memory = ConversationMemoryStore(storage or MemoryStorage(), namespace=settings.state_namespace)
    if completion_client is None:
        completion_client = AzureChatCompletionClient(
            endpoint=settings.openai_endpoint,
            api_key=settings.openai_api_key,
            deployment=settings.openai_deployment,
            api_version=settings.openai_api_version,
            timeout=settings.completion_timeout,
        )
    bot = EchoBot(memory, completion_client)

    # ==========
    # Telemetría opcional a App Insights
    # ==========
    if settings.appinsights_connection_string:
        ikey = _instrumentation_key(settings.appinsights_connection_string)
        if ikey:
            ai_client = ApplicationInsightsTelemetryClient(ikey, telemetry_processor=bot_telemetry_processor)
            # Loguea actividades entrantes/salientes sin PII
            adapter.use(TelemetryLoggerMiddleware(ai_client, log_personal_information=False))
            log.info("[AI] Application Insights habilitado")
        else:
            log.warning("[AI] APPLICATIONINSIGHTS_CONNECTION_STRING sin InstrumentationKey; telemetría deshabilitada")

    # ==========
    # Handlers
    # ==========
    async def messages(req: web.Request) -> web.Response:
        if "application/json" not in req.headers.get("Content-Type", ""):
            return web.Response(status=415, text="Content-Type must be application/json")

        body = await req.json()
        activity: Activity = Activity().deserialize(body)
        auth_header = req.headers.get("Authorization", "")

        log.info("[DIAG] %s", diagnose_activity(activity))
        claims = jwt_claims(auth_header)
        if claims:
            log.info("[JWT] iss=%s | aud=%s | appid=%s | tid=%s | ver=%s",
                     claims["iss"], claims["aud"], claims["appid"], claims["tid"], claims["ver"])

        invoke_response = await adapter.process_activity(auth_header, activity, bot.on_turn)
        if invoke_response:
            return web.json_response(data=invoke_response.body, status=invoke_response.status)
        return web.Response(status=201)

    async def health(_: web.Request) -> web.Response:
        return web.json_response({"ok": True})

    async def diag_env(_: web.Request) -> web.Response:
        return web.json_response(public_env_snapshot())

    async def diag_msal(_: web.Request) -> web.Response:
        if not settings.app_id or not settings.app_password:
            return web.json_response({"ok": False, "error": "Faltan AppId/Secret"}, status=500)
        authority = authority_for(settings.app_tenant_id, settings.app_type)
        log.info("Inicializando con authority de Entra: %s", authority)
        try:
            info = await asyncio.to_thread(acquire_bf_token, settings.app_id, settings.app_password, authority)
        except Exception as e:
            return web.json_response({"ok": False, "exception": str(e)}, status=500)
        ok = info["has_access_token"]
        return web.json_response({"ok": ok, **info}, status=200 if ok else 500)

    async def diag_conversation(req: web.Request) -> web.Response:
        conversation_id = req.match_info["conversation_id"]
        try:
            record = await memory.load(conversation_id)
        except StorageError as e:
            return web.json_response({"ok": False, "error": str(e)}, status=503)
        if record is None:
            return web.json_response({"ok": False, "conversation_id": conversation_id}, status=404)
        return web.json_response({"conversation_id": conversation_id, "entries": len(record.history)})

    async def on_cleanup(_: web.Application) -> None:
        aclose = getattr(completion_client, "aclose", None)
        if aclose is not None:
            await aclose()

    # ==========
    # App AIOHTTP
    # ==========
    app = web.Application()
    app.router.add_post("/api/messages", messages)
    app.router.add_get("/health", health)
    app.router.add_get("/diag/env", diag_env)
    app.router.add_get("/diag/msal", diag_msal)
    app.router.add_get("/diag/conversation/{conversation_id}", diag_conversation)
    app.on_cleanup.append(on_cleanup)
    return app


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(levelname)s:%(name)s:%(message)s",
    )
    try:
        settings = load_settings()
        logging.getLogger().setLevel(settings.log_level)
        app = create_app(settings)
    except ValueError as e:
        log.error("Configuración incompleta: %s", e)
        sys.exit(1)
    web.run_app(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
