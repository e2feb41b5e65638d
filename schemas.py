"""
Input models for service operations.

pydantic does the field-level checks; `validate()` converts pydantic's
errors into the marketplace ValidationError so callers only deal with one
error taxonomy.
"""

from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from models import UserType

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate(model_cls: Type[ModelT], **data) -> ModelT:
    """Instantiate `model_cls` or raise ValidationError with pydantic's messages."""
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(messages) from e


class ProductFilters(BaseModel):
    """Client-side catalog filters. A field left as None means no constraint."""
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    in_stock: Optional[bool] = None
    search_query: Optional[str] = None


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2)
    user_type: UserType
    phone_number: Optional[str] = None
    avatar: Optional[str] = None


class SellerProfile(BaseModel):
    business_name: str = Field(..., min_length=2)
    description: str = Field(..., min_length=20)
    categories: List[str] = Field(..., min_length=1)
    avatar: Optional[str] = None
    cover_image: Optional[str] = None


class SellerUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    business_name: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = Field(None, min_length=20)
    categories: Optional[List[str]] = Field(None, min_length=1)
    avatar: Optional[str] = None
    cover_image: Optional[str] = None


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    seller_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=3)
    description: str = Field(..., min_length=10)
    price: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    in_stock: bool = True
    quantity: Optional[int] = Field(None, ge=0, strict=True)
    images: List[str] = Field(default_factory=list)
    emoji: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=3)
    description: Optional[str] = Field(None, min_length=10)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1)
    in_stock: Optional[bool] = None
    quantity: Optional[int] = Field(None, ge=0, strict=True)
    images: Optional[List[str]] = None
    emoji: Optional[str] = None
    tags: Optional[List[str]] = None


class RequestCreate(BaseModel):
    quantity: int = Field(..., gt=0, strict=True)
    message: str = ""


class FeedbackCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
