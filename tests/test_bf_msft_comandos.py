"""Tests for the Bot Framework connector diagnostics."""
import base64
import json
from unittest.mock import patch

from conectores.bf_msft_comandos import acquire_bf_token, authority_for, diagnose_activity, jwt_claims

from conftest import message_activity


def _token(payload: dict) -> str:
    body = base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii").rstrip("=")
    return f"Bearer header.{body}.signature"


def _token_raw(raw: bytes) -> str:
    body = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return f"Bearer header.{body}.signature"


def test_jwt_claims_decoded():
    claims = jwt_claims(_token({"iss": "https://api.botframework.com", "aud": "app", "azp": "caller", "ver": "2.0"}))
    assert claims == {"iss": "https://api.botframework.com", "aud": "app", "appid": "caller", "tid": None, "ver": "2.0"}


def test_jwt_claims_without_bearer():
    assert jwt_claims("") is None
    assert jwt_claims("Basic abc") is None


def test_jwt_claims_garbage():
    assert jwt_claims("Bearer a.%%%.c") is None
    assert jwt_claims("Bearer onlyone") is None


def test_jwt_claims_payload_not_an_object():
    # "MTIz" es base64 de "123": JSON válido pero no un objeto
    assert jwt_claims("Bearer x.MTIz.y") is None
    assert jwt_claims(_token_raw(b"[1, 2]")) is None


def test_authority_for():
    assert authority_for("t1", "SingleTenant") == "https://login.microsoftonline.com/t1"
    assert authority_for("t1", "MultiTenant") == "https://login.microsoftonline.com/botframework.com"
    assert authority_for("", "SingleTenant") == "https://login.microsoftonline.com/botframework.com"


def test_acquire_bf_token_hides_the_token():
    with patch("conectores.bf_msft_comandos.msal.ConfidentialClientApplication") as cca:
        cca.return_value.acquire_token_for_client.return_value = {
            "access_token": "secret", "token_type": "Bearer", "expires_in": 3599,
        }
        info = acquire_bf_token("app", "pw", "https://login.microsoftonline.com/t1")

    assert info["has_access_token"] is True
    assert "access_token" not in info
    assert info["expires_in"] == 3599
    cca.assert_called_once_with(client_id="app", client_credential="pw",
                                authority="https://login.microsoftonline.com/t1")


def test_diagnose_activity_normalizes_teams_recipient():
    activity = message_activity("hi", conversation_id="c9")
    activity.channel_id = "msteams"
    activity.recipient.id = "28:abc"
    diag = diagnose_activity(activity)
    assert diag["recipientNormalized"] == "abc"
    assert diag["conversationId"] == "c9"
    assert diag["type"] == "message"
