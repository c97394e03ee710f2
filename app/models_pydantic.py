from typing import Optional, List, Literal
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field

BookingStatus = Literal["pending", "confirmed", "rejected", "cancelled"]

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr

class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

Gender = Literal["male", "female", "other", "prefer-not-to-say"]

class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, pattern=r"^\+?[1-9]\d{0,15}$")
    gender: Optional[Gender] = None
    alternate_email: Optional[EmailStr] = None
    date_of_birth: Optional[date] = None
    address_street: Optional[str] = Field(None, max_length=255)
    address_city: Optional[str] = Field(None, max_length=100)
    address_state: Optional[str] = Field(None, max_length=100)
    address_zip_code: Optional[str] = Field(None, max_length=20)
    address_country: Optional[str] = Field(None, max_length=100)

# Only returned to the user themselves
class ProfileResponse(UserResponse):
    phone_number: Optional[str] = None
    gender: Optional[Gender] = None
    alternate_email: Optional[EmailStr] = None
    date_of_birth: Optional[date] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip_code: Optional[str] = None
    address_country: Optional[str] = None

class ListingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    address_line1: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    price_per_night: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    max_guests: int = Field(..., ge=1)
    bedrooms: int = Field(0, ge=0)
    bathrooms: int = Field(0, ge=0)
    amenities: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None

class ListingCreate(ListingBase):
    pass

class ListingUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    address_line1: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    price_per_night: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    max_guests: Optional[int] = Field(None, ge=1)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None

class ListingResponse(ListingBase):
    id: int
    host_id: int
    created_at: datetime

class BookedRange(BaseModel):
    check_in_date: date
    check_out_date: date

class QuoteResponse(BaseModel):
    listing_id: int
    check_in_date: date
    check_out_date: date
    nights: int
    price_per_night: Decimal
    subtotal: Decimal
    service_fee: Decimal
    total: Decimal
    currency: str

class BookingCreate(BaseModel):
    listing_id: int
    check_in_date: date
    check_out_date: date
    guest_count: int = Field(1, gt=0)

class BookingStatusUpdate(BaseModel):
    status: BookingStatus

class BookingResponse(BaseModel):
    id: int
    listing_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    guest_count: int
    nights: int
    total_price: Decimal
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
