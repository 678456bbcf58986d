"""
API request and response models for the CasinoVizion REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/, auth/ and
panel/, which own the internal domain representation. Route handlers map
between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from auth.permissions import permissions_for
from core.models import DEFAULT_LATITUDE, DEFAULT_LONGITUDE, Casino, CasinoForm
from panel.models import API_RATE_LIMITS, CURRENCIES, EMAIL_FREQUENCIES, TIMEZONES

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CasinoStatusEnum(str, Enum):
    active = "Active"
    inactive = "Inactive"
    pending = "Pending"


class ContentFilterEnum(str, Enum):
    all = "all"
    enable = "enable"
    disable = "disable"


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    # Cognito pools in this deployment sign in by email, but any username works.
    username: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login and /auth/new-password.

    signed_in=False means the provider wants another step. next_step names it
    and challenge_session must be echoed back to /auth/new-password.
    """

    model_config = ConfigDict(frozen=True)

    signed_in: bool
    access_token: Optional[str] = None
    token_type: str = "bearer"  # noqa: S105 -- OAuth token type, not a password
    expires_in: Optional[int] = None
    username: Optional[str] = None
    role: Optional[str] = None
    next_step: Optional[str] = None
    challenge_session: Optional[str] = None


class NewPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/new-password (NEW_PASSWORD_REQUIRED challenge)."""

    username: str = Field(min_length=1, max_length=320)
    challenge_session: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=256)
    confirm_password: str = Field(min_length=1, max_length=256)


class PasswordChangeRequest(BaseModel):
    """Request body for POST /api/v1/auth/password."""

    old_password: str = Field(min_length=1, max_length=256)
    new_password: str = Field(min_length=1, max_length=256)
    confirm_password: str = Field(min_length=1, max_length=256)


class ProfileUpdate(BaseModel):
    """Request body for PATCH /api/v1/auth/me. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, max_length=255)
    given_name: Optional[str] = Field(default=None, max_length=255)
    family_name: Optional[str] = Field(default=None, max_length=255)
    avatar: Optional[str] = Field(default=None, max_length=2048)


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    role: str
    name: str
    given_name: str
    family_name: str
    avatar: Optional[str]
    cognito_id: Optional[str]
    permissions: list[str]

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            name=user.name,
            given_name=user.given_name,
            family_name=user.family_name,
            avatar=user.avatar,
            cognito_id=user.cognito_id,
            permissions=sorted(permissions_for(user.role)),
        )


class TokenRefreshResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    refreshed: bool
    id_token: Optional[str] = None


class TokenValidResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool


class OAuthProviderInfo(BaseModel):
    """One social sign-in button on the login page."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Casinos and categories
# ---------------------------------------------------------------------------


class RestaurantOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str
    cuisine: str
    rating: Optional[float]


class HotelOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str
    rooms: Optional[int]
    rating: Optional[float]


class PromotionOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    description: str
    status: str


class CasinoResponse(BaseModel):
    """One casino as returned by the list and detail endpoints."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    subcategories: list[str]
    image: str
    address: str
    latitude: Optional[float]
    longitude: Optional[float]
    created_at: str
    contact: str
    email: str
    phone: str
    status: str
    description: str
    timings: str
    content_enabled: bool = True
    restaurants: list[RestaurantOut] = Field(default_factory=list)
    promotions: list[PromotionOut] = Field(default_factory=list)
    hotels: list[HotelOut] = Field(default_factory=list)

    @classmethod
    def from_casino(cls, casino: Casino, content_enabled: bool = True) -> "CasinoResponse":
        """Factory Method -- the mapping lives next to the output model, not in handlers."""
        return cls(
            id=casino.id,
            name=casino.name,
            category=casino.category,
            subcategories=casino.subcategories,
            image=casino.image,
            address=casino.address,
            latitude=casino.latitude,
            longitude=casino.longitude,
            created_at=casino.created_at,
            contact=casino.contact,
            email=casino.email,
            phone=casino.phone,
            status=casino.status,
            description=casino.description,
            timings=casino.timings,
            content_enabled=content_enabled,
            restaurants=[RestaurantOut.model_validate(r) for r in casino.restaurants],
            promotions=[PromotionOut.model_validate(p) for p in casino.promotions],
            hotels=[HotelOut.model_validate(h) for h in casino.hotels],
        )


class CasinoListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    returned: int
    data: list[CasinoResponse]


class CasinoCreate(BaseModel):
    """Request body for POST /api/v1/casinos. Images are uploaded through the web form only."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    category: str = Field(min_length=1, max_length=64)
    status: CasinoStatusEnum
    description: str = Field(default="", max_length=5000)
    address: str = Field(default="", max_length=255)
    address2: str = Field(default="", max_length=255)
    address3: str = Field(default="", max_length=255)
    latitude: float = Field(default=DEFAULT_LATITUDE, ge=-90, le=90)
    longitude: float = Field(default=DEFAULT_LONGITUDE, ge=-180, le=180)
    subcategories: list[str] = Field(default_factory=list, max_length=50)

    def to_form(self) -> CasinoForm:
        return CasinoForm(
            name=self.name,
            description=self.description,
            address=self.address,
            address2=self.address2,
            address3=self.address3,
            email=self.email,
            latitude=self.latitude,
            longitude=self.longitude,
            category=self.category,
            subcategories=list(self.subcategories),
            status=self.status.value,
        )


class ContentToggle(BaseModel):
    """Request body for PUT /api/v1/casinos/{casino_id}/content."""

    enabled: bool


class ContentToggleResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    casino_id: str
    enabled: bool


class CategoryOptionOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    key: str
    value: str


# ---------------------------------------------------------------------------
# Dashboard and analytics
# ---------------------------------------------------------------------------


class DashboardCardOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    value: str
    change: str


class QuickActionOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    title: str
    description: str
    href: str


class ActivityOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    message: str
    when: str


class DashboardResponse(BaseModel):
    """Response for GET /api/v1/dashboard -- only entries the caller may see."""

    model_config = ConfigDict(frozen=True)

    cards: list[DashboardCardOut]
    quick_actions: list[QuickActionOut]
    recent_activity: list[ActivityOut]


class KpiOut(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    title: str
    value: str
    change: str
    color: Optional[str] = None


class AnalyticsResponse(BaseModel):
    """Response for GET /api/v1/analytics."""

    model_config = ConfigDict(frozen=True)

    range: str
    ranges: dict[str, str]
    kpis: list[KpiOut]
    revenue: list[dict]
    categories: list[dict]
    metrics: list[tuple[str, str]]


# ---------------------------------------------------------------------------
# Panel settings
# ---------------------------------------------------------------------------


class PanelSettingsResponse(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    company_name: str
    admin_email: str
    timezone: str
    currency: str
    notifications: bool
    email_alerts: bool
    email_frequency: str
    two_factor_auth: bool
    maintenance_mode: bool
    api_rate_limit: str


class PanelSettingsPatch(BaseModel):
    """Request body for PATCH /api/v1/settings. Omitted fields are left unchanged.

    Option fields are checked against the same lists the settings page offers.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    admin_email: Optional[str] = Field(default=None, min_length=3, max_length=320)
    timezone: Optional[str] = None
    currency: Optional[str] = None
    notifications: Optional[bool] = None
    email_alerts: Optional[bool] = None
    email_frequency: Optional[str] = None
    two_factor_auth: Optional[bool] = None
    maintenance_mode: Optional[bool] = None
    api_rate_limit: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, TIMEZONES, "timezone")

    @field_validator("currency")
    @classmethod
    def check_currency(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, CURRENCIES, "currency")

    @field_validator("email_frequency")
    @classmethod
    def check_email_frequency(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, EMAIL_FREQUENCIES, "email_frequency")

    @field_validator("api_rate_limit")
    @classmethod
    def check_api_rate_limit(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, API_RATE_LIMITS, "api_rate_limit")


def _one_of(value: Optional[str], options: dict, name: str) -> Optional[str]:
    if value is not None and value not in options:
        raise ValueError(f"{name} must be one of {sorted(options)}")
    return value


# ---------------------------------------------------------------------------
# User administration
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """One recorded user in GET /api/v1/users."""

    model_config = ConfigDict(frozen=True)

    username: str
    email: str
    role: str
    name: str
    family_name: str
    is_active: bool
    created_at: Optional[str]
    last_login: Optional[str]

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            username=user.username,
            email=user.email,
            role=user.role,
            name=user.name,
            family_name=user.family_name,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login=user.last_login,
        )


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/users/{username}."""

    is_active: bool
