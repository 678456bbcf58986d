"""
auth/cognito.py -- Client for the Cognito user-pool JSON API.

Only the unauthenticated, client-side operations are used -- the same ones a
browser SDK calls -- so no AWS credentials or request signing are needed:

  InitiateAuth (USER_PASSWORD_AUTH, REFRESH_TOKEN_AUTH)
  RespondToAuthChallenge (NEW_PASSWORD_REQUIRED)
  GetUser, ChangePassword, GlobalSignOut (access-token authenticated)

Every operation raises IdentityError on failure. The error name is the
provider's exception type ("NotAuthorizedException", ...) so callers can branch
on it; network failures use the name "NetworkError".

Security notes:
  SECRET_HASH is HMAC-SHA256(client_secret, username + client_id), base64. It
  is only sent when the app client has a secret configured.

  Passwords and tokens are never logged.

Layer rule: no imports from api/, web/, or panel/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

import requests

from auth.identity import attributes_from_list
from auth.models import IdentityUser, SignInResult, TokenBundle

logger = logging.getLogger("casinovizion.auth.cognito")

_TARGET_PREFIX = "AWSCognitoIdentityProviderService."


class IdentityError(Exception):
    """An identity-provider operation failed.

    name    -- provider exception type, e.g. "UserNotFoundException"
    message -- provider message, safe to show to the signed-in user
    """

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(f"{name}: {message}" if message else name)
        self.name = name
        self.message = message


class CognitoClient:
    """Usage:
    client = CognitoClient(settings.cognito_endpoint, settings.cognito_client_id)
    result = client.sign_in("ops@example.com", "S3cret!pass")
    if result.is_signed_in:
        who = client.get_user(result.tokens.access_token)
    """

    def __init__(self, endpoint: str, client_id: str, client_secret: str = "", timeout: int = 10) -> None:
        self.endpoint = endpoint
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._session = requests.Session()
        self._session.max_redirects = 0

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _call(self, operation: str, payload: dict) -> dict:
        headers = {
            "Content-Type": "application/x-amz-json-1.1",
            "X-Amz-Target": _TARGET_PREFIX + operation,
        }
        try:
            resp = self._session.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Cognito %s failed: %s", operation, e)
            raise IdentityError("NetworkError", "The identity provider could not be reached.") from e

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = {}
        if not resp.ok:
            # __type may be namespaced: "com.amazon...#NotAuthorizedException"
            name = str(body.get("__type", f"HTTP{resp.status_code}")).rsplit("#", 1)[-1]
            message = body.get("message") or body.get("Message") or ""
            logger.info("Cognito %s rejected: %s", operation, name)
            raise IdentityError(name, message)
        return body

    def _secret_hash(self, username: str) -> str | None:
        if not self.client_secret:
            return None
        digest = hmac.new(
            self.client_secret.encode(),
            (username + self.client_id).encode(),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    def _auth_params(self, username: str, **params: str) -> dict:
        secret_hash = self._secret_hash(username)
        if secret_hash:
            params["SECRET_HASH"] = secret_hash
        return params

    @staticmethod
    def _tokens(result: dict, refresh_token: str | None = None) -> TokenBundle:
        return TokenBundle(
            id_token=result["IdToken"],
            access_token=result["AccessToken"],
            # REFRESH_TOKEN_AUTH does not return a new refresh token.
            refresh_token=result.get("RefreshToken") or refresh_token,
            expires_in=int(result.get("ExpiresIn", 3600)),
        )

    def _sign_in_result(self, body: dict) -> SignInResult:
        if "AuthenticationResult" in body:
            return SignInResult(is_signed_in=True, tokens=self._tokens(body["AuthenticationResult"]))
        return SignInResult(
            is_signed_in=False,
            next_step=body.get("ChallengeName"),
            challenge_session=body.get("Session"),
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def sign_in(self, username: str, password: str) -> SignInResult:
        body = self._call(
            "InitiateAuth",
            {
                "AuthFlow": "USER_PASSWORD_AUTH",
                "ClientId": self.client_id,
                "AuthParameters": self._auth_params(username, USERNAME=username, PASSWORD=password),
            },
        )
        return self._sign_in_result(body)

    def complete_new_password(self, username: str, new_password: str, challenge_session: str) -> SignInResult:
        body = self._call(
            "RespondToAuthChallenge",
            {
                "ChallengeName": "NEW_PASSWORD_REQUIRED",
                "ClientId": self.client_id,
                "Session": challenge_session,
                "ChallengeResponses": self._auth_params(username, USERNAME=username, NEW_PASSWORD=new_password),
            },
        )
        return self._sign_in_result(body)

    def get_user(self, access_token: str) -> IdentityUser:
        body = self._call("GetUser", {"AccessToken": access_token})
        attributes = attributes_from_list(body.get("UserAttributes", []))
        return IdentityUser(
            username=body.get("Username", ""),
            user_id=attributes.get("sub", ""),
            login_id=attributes.get("email", ""),
            attributes=attributes,
        )

    def refresh(self, refresh_token: str, username: str) -> TokenBundle:
        """Exchange a refresh token for fresh id/access tokens.

        username is only needed for SECRET_HASH; for pools that sign in by
        email this must be the provider username, not the email.
        """
        body = self._call(
            "InitiateAuth",
            {
                "AuthFlow": "REFRESH_TOKEN_AUTH",
                "ClientId": self.client_id,
                "AuthParameters": self._auth_params(username, REFRESH_TOKEN=refresh_token),
            },
        )
        if "AuthenticationResult" not in body:
            raise IdentityError("RefreshFailed", "No tokens returned for refresh.")
        return self._tokens(body["AuthenticationResult"], refresh_token=refresh_token)

    def change_password(self, access_token: str, old_password: str, new_password: str) -> None:
        self._call(
            "ChangePassword",
            {"AccessToken": access_token, "PreviousPassword": old_password, "ProposedPassword": new_password},
        )

    def global_sign_out(self, access_token: str) -> None:
        self._call("GlobalSignOut", {"AccessToken": access_token})

    def close(self) -> None:
        self._session.close()
