# conectores/bf_msft_comandos.py
import base64
import json
import logging
from typing import Any, Dict, Optional

import msal

logger = logging.getLogger("echo_bot.bf_msft")

SCOPE = ["https://api.botframework.com/.default"]


def authority_for(tenant: Optional[str], app_type: str = "SingleTenant") -> str:
    if app_type == "SingleTenant" and tenant:
        return f"https://login.microsoftonline.com/{tenant}"
    return "https://login.microsoftonline.com/botframework.com"


def acquire_bf_token(app_id: str, app_secret: str, authority: str) -> Dict[str, Any]:
    """Obtiene un token para Bot Framework con MSAL (client credentials). Nunca devuelve el token."""
    cca = msal.ConfidentialClientApplication(client_id=app_id, client_credential=app_secret, authority=authority)
    res = cca.acquire_token_for_client(scopes=SCOPE)
    out: Dict[str, Any] = {k: v for k, v in res.items() if k not in ("access_token", "refresh_token", "id_token")}
    out["has_access_token"] = "access_token" in res
    out["authority"] = authority
    return out


def jwt_claims(auth_header: str) -> Optional[Dict[str, Any]]:
    """Claims (sin validar) del JWT entrante, sólo para logs de diagnóstico."""
    if not auth_header.startswith("Bearer "):
        return None
    parts = auth_header.split(" ", 1)[1].split(".")
    if len(parts) != 3:
        return None
    padded = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("utf-8")))
    except ValueError as e:
        logger.warning("[JWT] No se pudieron decodificar claims: %s", e)
        return None
    if not isinstance(payload, dict):
        logger.warning("[JWT] payload no es un objeto: %s", type(payload).__name__)
        return None
    return {
        "iss": payload.get("iss"),
        "aud": payload.get("aud"),
        "appid": payload.get("appid") or payload.get("azp"),
        "tid": payload.get("tid"),
        "ver": payload.get("ver"),
    }


def diagnose_activity(activity) -> Dict[str, Any]:
    ch = getattr(activity, "channel_id", None)
    recipient = getattr(getattr(activity, "recipient", None), "id", None) or ""
    normalized = recipient
    if ch == "msteams" and recipient.startswith("28:"):
        normalized = recipient.split("28:")[-1]
    return {
        "type": getattr(activity, "type", None),
        "channelId": ch,
        "serviceUrl": getattr(activity, "service_url", None),
        "conversationId": getattr(getattr(activity, "conversation", None), "id", None),
        "recipientId": recipient,
        "recipientNormalized": normalized,
    }
