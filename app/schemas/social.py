"""Social login request schemas."""

from pydantic import BaseModel, ConfigDict, Field


class AppleFullName(BaseModel):
    """Name object Apple returns to the client on first authorization."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    given_name: str | None = Field(default=None, alias="givenName")
    family_name: str | None = Field(default=None, alias="familyName")


class GoogleLoginRequest(BaseModel):
    """Google authorization-code login payload."""

    model_config = ConfigDict(populate_by_name=True)

    code: str | None = None
    platform: str = "android"
    ads_id: str | None = Field(default=None, alias="adsId")


class AppleLoginRequest(BaseModel):
    """Apple identity-token login payload."""

    model_config = ConfigDict(populate_by_name=True)

    identity_token: str | None = Field(default=None, alias="identityToken")
    full_name: AppleFullName | str | None = Field(default=None, alias="fullName")
    ads_id: str | None = Field(default=None, alias="adsId")
