from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

# Case-insensitive spellings accepted for each category
CATEGORY_ALIASES = {
    "girl": ("girl", "female", "f"),
    "guy": ("guy", "male", "m"),
}


class Category(str, Enum):
    """The two participant categories; girls ask out guys."""

    GIRL = "girl"
    GUY = "guy"

    @classmethod
    def normalize(cls, value: Optional[str]) -> Optional["Category"]:
        """Map a user-supplied spelling to a category, or None."""
        v = str(value or "").strip().lower()
        for category, aliases in CATEGORY_ALIASES.items():
            if v in aliases:
                return cls(category)
        return None


class ParticipantResponse(BaseModel):
    """Public view of a participant with derived pairing status."""

    id: UUID
    name: str
    category: Category
    partner_id: Optional[UUID] = Field(default=None, serialization_alias="partnerId")
    partner_name: Optional[str] = Field(
        default=None, serialization_alias="partnerName"
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def gender(self) -> Category:
        """Alias of ``category`` for clients that speak girl/guy as gender."""
        return self.category


class ParticipantCredentials(BaseModel):
    """Internal record used for sign-in; never returned to clients."""

    id: UUID
    name: str
    category: Category
    code_hash: str

    model_config = ConfigDict(from_attributes=True)


class SignUpRequest(BaseModel):
    """Request model for registering a participant."""

    name: Optional[str] = Field(default="", description="Display name")
    code: Optional[str] = Field(default="", description="Secret access code")
    category: Optional[str] = Field(
        default="",
        validation_alias=AliasChoices("category", "gender"),
        description="girl/female/f or guy/male/m",
    )


class SignInRequest(BaseModel):
    """Request model for signing in."""

    name: Optional[str] = ""
    code: Optional[str] = ""


class UserEnvelope(BaseModel):
    ok: bool = True
    user: ParticipantResponse


class MeResponse(BaseModel):
    me: ParticipantResponse


class MembersResponse(BaseModel):
    members: List[ParticipantResponse]
