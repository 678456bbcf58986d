from dataclasses import dataclass, field
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

CASINO_STATUSES = ("Active", "Inactive", "Pending")

# Map pin used by the create form when the operator does not move it (Las Vegas Strip).
DEFAULT_LATITUDE = 36.1146
DEFAULT_LONGITUDE = -115.1769


@dataclass
class Restaurant:
    id: str
    name: str
    cuisine: str = ""
    rating: Optional[float] = None


@dataclass
class Hotel:
    id: str
    name: str
    rooms: Optional[int] = None
    rating: Optional[float] = None


@dataclass
class Promotion:
    id: str
    title: str
    description: str = ""
    status: str = ""


@dataclass
class Casino:
    id: str
    name: str
    category: str = ""
    subcategories: list[str] = field(default_factory=list)
    image: str = ""  # absolute URL, normalised by core.backend
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: str = ""
    contact: str = ""
    email: str = ""
    phone: str = ""
    status: str = "Active"
    description: str = ""
    timings: str = ""
    restaurants: list[Restaurant] = field(default_factory=list)
    promotions: list[Promotion] = field(default_factory=list)
    hotels: list[Hotel] = field(default_factory=list)

    @property
    def initials(self) -> str:
        return self.name[:2].upper()


@dataclass
class CategoryOption:
    """One entry of a category or subcategory dropdown."""

    key: str
    value: str


@dataclass
class CasinoForm:
    """Fields submitted by the create-casino form, in backend field names."""

    name: str = ""
    description: str = ""
    address: str = ""
    address2: str = ""
    address3: str = ""
    email: str = ""
    latitude: float = DEFAULT_LATITUDE
    longitude: float = DEFAULT_LONGITUDE
    category: str = ""
    subcategories: list[str] = field(default_factory=list)
    status: str = ""

    def missing_required(self) -> list[str]:
        """Return the names of required fields that are blank."""
        required = {"name": self.name, "email": self.email, "category": self.category, "status": self.status}
        return [k for k, v in required.items() if not (v or "").strip()]
