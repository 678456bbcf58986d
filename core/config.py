"""
core/config.py -- Admin panel configuration, read from the environment by pydantic-settings.

Every environment read goes through get_settings(); nothing else calls
os.getenv(). Field names map to upper-case variables (cognito_client_id ->
COGNITO_CLIENT_ID) and a local .env file is honoured.

get_settings() is lru_cached, so the first call fixes the configuration for
the life of the process. Tests set variables before the first import.

Validation runs once, after all fields resolve:
  - SECRET_KEY signs the app session JWT and the Starlette session cookie.
    DEBUG=true invents a throwaway key; otherwise a missing key stops startup.
    Keys under 32 characters are always refused.
  - DEFAULT_ROLE must be a known role, so a typo fails at boot instead of at
    first login.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or panel/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("casinovizion.config")

# Mirrors auth.permissions.ROLES. Duplicated here because core/ may not import
# auth/; test_permissions.py asserts the two stay equal.
KNOWN_ROLES = ("admin", "developer", "guest")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # App session
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = 3600
    # Role assigned when the identity provider does not supply a known
    # custom:role attribute.
    default_role: str = "admin"

    # ------------------------------------------------------------------
    # Identity provider (AWS Cognito user pool)
    # ------------------------------------------------------------------

    cognito_region: str = "us-east-1"
    cognito_user_pool_id: str = ""
    cognito_client_id: str = ""
    # Optional. App clients created with a secret require SECRET_HASH.
    cognito_client_secret: str = ""
    # Hosted UI domain, e.g. "casinovizion.auth.us-east-1.amazoncognito.com".
    # Empty disables social sign-in.
    cognito_domain: str = ""
    # Comma-separated Cognito identity provider names offered on the login page.
    cognito_social_providers: str = "Google,Facebook,SignInWithApple"
    identity_timeout: int = 10

    # ------------------------------------------------------------------
    # Venue REST backend
    # ------------------------------------------------------------------

    api_base: str = "http://localhost:5000/api/"
    media_base: str = "http://localhost:5000/"
    backend_timeout: int = 10

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    # Comma-separated; consumed by TrustedHostMiddleware and CORSMiddleware.
    allowed_hosts: str = "localhost,127.0.0.1,*.localhost"
    cors_origins: str = "http://localhost,http://localhost:3000,http://127.0.0.1"
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        if not self.secret_key and not self.debug:
            raise ValueError("SECRET_KEY must be set unless DEBUG=true (put it in the environment or .env).")
        if not self.secret_key:
            self.secret_key = secrets.token_hex(32)
            logger.warning("DEBUG: generated a throwaway SECRET_KEY; sessions end when the process restarts.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_default_role(self) -> "Settings":
        if self.default_role not in KNOWN_ROLES:
            raise ValueError(f"DEFAULT_ROLE must be one of {KNOWN_ROLES}, got {self.default_role!r}")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def cognito_endpoint(self) -> str:
        """Cognito user-pool JSON API endpoint for the configured region."""
        return f"https://cognito-idp.{self.cognito_region}.amazonaws.com/"

    @property
    def cognito_discovery_url(self) -> str:
        """OIDC discovery document for the configured user pool."""
        return (
            f"https://cognito-idp.{self.cognito_region}.amazonaws.com/"
            f"{self.cognito_user_pool_id}/.well-known/openid-configuration"
        )

    @property
    def social_providers(self) -> list[str]:
        return _split(self.cognito_social_providers)

    @property
    def allowed_host_list(self) -> list[str]:
        return _split(self.allowed_hosts)

    @property
    def cors_origin_list(self) -> list[str]:
        return _split(self.cors_origins)


def _split(value: str) -> list[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    All modules should call get_settings() rather than constructing Settings()
    directly. In tests: call get_settings.cache_clear() between test cases if
    you need to inject different environment variables.
    """
    return Settings()
