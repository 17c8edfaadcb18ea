"""Currency schemas for request/response validation."""

from pydantic import BaseModel, Field, field_validator


class CurrencyBase(BaseModel):
    """Base currency schema."""

    code: str = Field(..., min_length=3, max_length=3)
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str | None = Field(None, min_length=1, max_length=10)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        """Accept lower-case codes such as ``chf``."""
        return v.strip().upper()


class CurrencyCreate(CurrencyBase):
    """Schema for registering a currency."""

    pass


class CurrencyUpdate(BaseModel):
    """Schema for updating a currency; the code itself cannot change."""

    name: str | None = Field(None, min_length=1, max_length=100)
    symbol: str | None = Field(None, min_length=1, max_length=10)


class CurrencyResponse(CurrencyBase):
    """Schema for currency response."""

    model_config = {"from_attributes": True}
