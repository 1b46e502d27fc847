import os
from dataclasses import dataclass
from typing import Dict, Optional

# Acepta MAYÚSCULAS y camelCase (compat App Service / Render)
_ALIASES = {
    "MICROSOFT_APP_ID": "MicrosoftAppId",
    "MICROSOFT_APP_PASSWORD": "MicrosoftAppPassword",
    "MICROSOFT_APP_TENANT_ID": "MicrosoftAppTenantId",
    "MICROSOFT_APP_TYPE": "MicrosoftAppType",
    "TO_CHANNEL_SCOPE": "ToChannelFromBotOAuthScope",
}

_SECRETS = {"MICROSOFT_APP_PASSWORD", "AZURE_OPENAI_API_KEY", "APPLICATIONINSIGHTS_CONNECTION_STRING"}


def _get_env(name: str, fallback: str = "", environ: Optional[Dict[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    alias = _ALIASES.get(name)
    if alias:
        return env.get(name, env.get(alias, fallback))
    return env.get(name, fallback)


@dataclass(frozen=True)
class BotFrameworkConfig:
    APP_ID: str
    APP_PASSWORD: str
    APP_TENANTID: str
    APP_TYPE: str
    TO_CHANNEL_FROM_BOT_OAUTH_SCOPE: str


@dataclass(frozen=True)
class Settings:
    app_id: str = ""
    app_password: str = ""
    app_tenant_id: str = ""
    app_type: str = "MultiTenant"
    to_channel_scope: str = "https://api.botframework.com/.default"
    openai_endpoint: str = ""
    openai_api_key: str = ""
    openai_deployment: str = "gpt-35-turbo"
    openai_api_version: str = "2024-02-01"
    completion_timeout: float = 30.0
    state_namespace: str = "conversation"
    appinsights_connection_string: str = ""
    log_level: str = "INFO"
    port: int = 3978

    def bot_framework_config(self) -> "BotFrameworkConfig":
        """Config que espera ConfigurationBotFrameworkAuthentication (lee atributos, no claves)."""
        return BotFrameworkConfig(
            APP_ID=self.app_id,
            APP_PASSWORD=self.app_password,
            APP_TENANTID=self.app_tenant_id,
            APP_TYPE=self.app_type,  # SingleTenant | MultiTenant | UserAssignedMSI
            TO_CHANNEL_FROM_BOT_OAUTH_SCOPE=self.to_channel_scope,
        )


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    """Se lee una sola vez al arrancar el proceso."""
    g = lambda name, fallback="": _get_env(name, fallback, environ)  # noqa: E731
    return Settings(
        app_id=g("MICROSOFT_APP_ID"),
        app_password=g("MICROSOFT_APP_PASSWORD"),
        app_tenant_id=g("MICROSOFT_APP_TENANT_ID"),
        app_type=g("MICROSOFT_APP_TYPE", "MultiTenant"),
        to_channel_scope=g("TO_CHANNEL_SCOPE", "https://api.botframework.com/.default"),
        openai_endpoint=g("AZURE_OPENAI_ENDPOINT"),
        openai_api_key=g("AZURE_OPENAI_API_KEY"),
        openai_deployment=g("AZURE_OPENAI_DEPLOYMENT", "gpt-35-turbo"),
        openai_api_version=g("AZURE_OPENAI_API_VERSION", "2024-02-01"),
        completion_timeout=float(g("COMPLETION_TIMEOUT", "30")),
        state_namespace=g("STATE_NAMESPACE", "conversation"),
        appinsights_connection_string=g("APPLICATIONINSIGHTS_CONNECTION_STRING"),
        log_level=g("LOG_LEVEL", "INFO"),
        port=int(g("PORT", "3978")),
    )


def public_env_snapshot(environ: Optional[Dict[str, str]] = None) -> dict:
    keys = [
        "MICROSOFT_APP_ID", "MICROSOFT_APP_PASSWORD", "MICROSOFT_APP_TENANT_ID", "MICROSOFT_APP_TYPE",
        "TO_CHANNEL_SCOPE", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_DEPLOYMENT",
        "APPLICATIONINSIGHTS_CONNECTION_STRING", "PORT",
    ]
    out = {}
    for k in keys:
        v = _get_env(k, environ=environ)
        if k in _SECRETS:
            out[k] = "SET(***masked***)" if v else "MISSING"
        else:
            out[k] = v or "MISSING"
    return out
