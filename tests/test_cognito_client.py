"""
tests/test_cognito_client.py -- Cognito user-pool JSON API client.

The requests.Session is mocked; assertions check the wire format (target
header, payload shape, SECRET_HASH) and the mapping of responses and
provider errors.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from unittest.mock import MagicMock

import pytest
import requests

from auth.cognito import CognitoClient, IdentityError

_ENDPOINT = "https://cognito-idp.us-east-1.amazonaws.com/"
_AUTH_RESULT = {"IdToken": "id-1", "AccessToken": "access-1", "RefreshToken": "refresh-1", "ExpiresIn": 3600}


def _response(status: int = 200, body: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.content = b"{}" if body is not None else b""
    resp.json.return_value = body or {}
    return resp


def _client(secret: str = "", response: MagicMock | None = None) -> CognitoClient:
    client = CognitoClient(_ENDPOINT, "client-abc", secret)
    client._session = MagicMock()
    client._session.post.return_value = response or _response(body={})
    return client


def _sent(client: CognitoClient) -> tuple[dict, dict]:
    call = client._session.post.call_args
    return call.kwargs["headers"], call.kwargs["json"]


class TestTransport:
    def test_target_header_and_content_type(self) -> None:
        client = _client(response=_response(body={"AuthenticationResult": _AUTH_RESULT}))
        client.sign_in("ops@example.com", "pw")
        headers, _ = _sent(client)
        assert headers["X-Amz-Target"] == "AWSCognitoIdentityProviderService.InitiateAuth"
        assert headers["Content-Type"] == "application/x-amz-json-1.1"
        assert client._session.post.call_args.args[0] == _ENDPOINT

    def test_provider_error_name_is_unqualified(self) -> None:
        body = {"__type": "com.amazonaws.cognito#NotAuthorizedException", "message": "Incorrect username or password."}
        client = _client(response=_response(400, body))
        with pytest.raises(IdentityError) as exc_info:
            client.sign_in("ops@example.com", "bad")
        assert exc_info.value.name == "NotAuthorizedException"
        assert exc_info.value.message == "Incorrect username or password."

    def test_error_without_type_uses_status(self) -> None:
        client = _client(response=_response(503, None))
        with pytest.raises(IdentityError) as exc_info:
            client.global_sign_out("access-1")
        assert exc_info.value.name == "HTTP503"

    def test_network_failure(self) -> None:
        client = _client()
        client._session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(IdentityError) as exc_info:
            client.get_user("access-1")
        assert exc_info.value.name == "NetworkError"


class TestSignIn:
    def test_success_returns_tokens(self) -> None:
        client = _client(response=_response(body={"AuthenticationResult": _AUTH_RESULT}))
        result = client.sign_in("ops@example.com", "pw")
        assert result.is_signed_in is True
        assert result.tokens.id_token == "id-1"
        assert result.tokens.refresh_token == "refresh-1"
        _, payload = _sent(client)
        assert payload["AuthFlow"] == "USER_PASSWORD_AUTH"
        assert payload["ClientId"] == "client-abc"
        assert payload["AuthParameters"] == {"USERNAME": "ops@example.com", "PASSWORD": "pw"}

    def test_challenge_returns_next_step(self) -> None:
        client = _client(response=_response(body={"ChallengeName": "NEW_PASSWORD_REQUIRED", "Session": "sess-1"}))
        result = client.sign_in("ops@example.com", "Temp#1234")
        assert result.is_signed_in is False
        assert result.next_step == "NEW_PASSWORD_REQUIRED"
        assert result.challenge_session == "sess-1"

    def test_secret_hash_sent_when_client_has_secret(self) -> None:
        client = _client(secret="s3cret", response=_response(body={"AuthenticationResult": _AUTH_RESULT}))
        client.sign_in("ops@example.com", "pw")
        _, payload = _sent(client)
        expected = base64.b64encode(
            hmac.new(b"s3cret", b"ops@example.comclient-abc", hashlib.sha256).digest()
        ).decode()
        assert payload["AuthParameters"]["SECRET_HASH"] == expected

    def test_complete_new_password(self) -> None:
        client = _client(response=_response(body={"AuthenticationResult": _AUTH_RESULT}))
        result = client.complete_new_password("ops@example.com", "Casino#2024", "sess-1")
        assert result.is_signed_in is True
        headers, payload = _sent(client)
        assert headers["X-Amz-Target"].endswith("RespondToAuthChallenge")
        assert payload["ChallengeName"] == "NEW_PASSWORD_REQUIRED"
        assert payload["Session"] == "sess-1"
        assert payload["ChallengeResponses"] == {"USERNAME": "ops@example.com", "NEW_PASSWORD": "Casino#2024"}


class TestSessionOperations:
    def test_get_user_maps_attributes(self) -> None:
        body = {
            "Username": "b1f2-uuid",
            "UserAttributes": [
                {"Name": "sub", "Value": "sub-123"},
                {"Name": "email", "Value": "ops@example.com"},
                {"Name": "custom:role", "Value": "developer"},
            ],
        }
        client = _client(response=_response(body=body))
        user = client.get_user("access-1")
        assert user.username == "b1f2-uuid"
        assert user.user_id == "sub-123"
        assert user.login_id == "ops@example.com"
        assert user.attributes["custom:role"] == "developer"

    def test_refresh_keeps_old_refresh_token(self) -> None:
        result = {"IdToken": "id-2", "AccessToken": "access-2", "ExpiresIn": 3600}
        client = _client(response=_response(body={"AuthenticationResult": result}))
        tokens = client.refresh("refresh-1", "b1f2-uuid")
        assert tokens.id_token == "id-2"
        assert tokens.refresh_token == "refresh-1"
        _, payload = _sent(client)
        assert payload["AuthFlow"] == "REFRESH_TOKEN_AUTH"
        assert payload["AuthParameters"] == {"REFRESH_TOKEN": "refresh-1"}

    def test_refresh_without_result_fails(self) -> None:
        client = _client(response=_response(body={}))
        with pytest.raises(IdentityError) as exc_info:
            client.refresh("refresh-1", "b1f2-uuid")
        assert exc_info.value.name == "RefreshFailed"

    def test_change_password_payload(self) -> None:
        client = _client(response=_response(body={}))
        client.change_password("access-1", "Old#2023x", "New#2024x")
        headers, payload = _sent(client)
        assert headers["X-Amz-Target"].endswith("ChangePassword")
        assert payload == {"AccessToken": "access-1", "PreviousPassword": "Old#2023x", "ProposedPassword": "New#2024x"}

    def test_global_sign_out(self) -> None:
        client = _client(response=_response(body={}))
        client.global_sign_out("access-1")
        headers, payload = _sent(client)
        assert headers["X-Amz-Target"].endswith("GlobalSignOut")
        assert payload == {"AccessToken": "access-1"}
