from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    description: Optional[str] = ""
    category: Optional[str] = ""
    stock: Optional[int] = Field(None, ge=0)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Name is required')
        return v

    @field_validator('stock', mode='before')
    @classmethod
    def empty_stock(cls, v):
        return None if v == '' else v


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)

    @field_validator('stock', mode='before')
    @classmethod
    def empty_stock(cls, v):
        return None if v == '' else v


class PaginationQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    category: Optional[str] = None
