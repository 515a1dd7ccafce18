from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from utils.cep import normalize_cep

class AddressBase(BaseModel):
    label: Optional[str] = Field(default=None, max_length=50)
    street: str = Field(min_length=1)
    number: str = Field(min_length=1, max_length=20)
    complement: Optional[str] = None
    neighborhood: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=2)
    zip_code: str
    country: str = "BR"
    is_default: bool = False

    @field_validator("state")
    @classmethod
    def _upper_state(cls, v: str) -> str:
        return v.upper()

    @field_validator("zip_code")
    @classmethod
    def _valid_cep(cls, v: str) -> str:
        cep = normalize_cep(v)
        if len(cep) != 8:
            raise ValueError("CEP inválido")
        return cep

class AddressCreate(AddressBase):
    pass

class AddressUpdate(BaseModel):
    label: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    is_default: Optional[bool] = None

    @field_validator("zip_code")
    @classmethod
    def _valid_cep(cls, v):
        if v is None:
            return v
        cep = normalize_cep(v)
        if len(cep) != 8:
            raise ValueError("CEP inválido")
        return cep

class AddressOut(AddressBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
