from typing import Optional, List, Dict, Any, Literal, Type, TypeVar, Union
from datetime import date, datetime
from decimal import Decimal
from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, ValidationError, ValidationInfo,
    field_validator
)
from pydantic.alias_generators import to_camel

from app.core.exceptions import ValidationFailed
from app.core.utils import file_extension
from app.models.application import (
    ApplicationType, ApplicationStatus, PaymentStatus, Sex
)

FormT = TypeVar("FormT", bound=BaseModel)

ALLOWED_DOCUMENT_EXTENSIONS = ("pdf", "jpg", "jpeg", "png")

# Human-readable names used in validation messages
FIELD_LABELS = {
    "given_names": "Given names",
    "last_names": "Last names",
    "sex": "Sex",
    "birth_date": "Birth date",
    "birth_place": "Birth place",
    "residence_country": "Residence country",
    "nationality": "Nationality",
    "passport_number": "Passport number",
    "passport_validity": "Passport validity",
    "passport_issuer": "Passport issuer",
    "flight_number": "Flight number",
    "arrival_date": "Arrival date",
    "departure_date": "Departure date",
    "arrival_city": "Arrival city",
    "has_existing_visa": "Existing visa",
    "accommodation_name": "Accommodation name",
    "accommodation_address": "Accommodation address",
    "accommodation_city": "Accommodation city",
    "accepted_terms": "Terms and conditions",
    "email": "Email",
    "agency_name": "Agency name",
    "agency_contact": "Contact person",
    "agency_email": "Agency email",
    "agency_phone": "Phone number",
    "agency_address": "Agency address",
}

TERMS_MESSAGE = "You must accept the terms and conditions"


class FormBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True
    )


class TravelerForm(FormBase):
    """Fields shared by the tourist and agency forms"""
    given_names: str = Field(..., min_length=2, max_length=255)
    last_names: str = Field(..., min_length=2, max_length=255)
    sex: Sex
    birth_date: date
    birth_place: str = Field(..., min_length=2, max_length=255)
    residence_country: str = Field(..., min_length=2, max_length=100)
    nationality: str = Field(..., min_length=2, max_length=100)

    # Passport
    passport_number: str = Field(..., min_length=4, max_length=50)
    passport_validity: date
    passport_issuer: str = Field(..., min_length=2, max_length=255)

    # Trip
    flight_number: str = Field(..., min_length=2, max_length=20)
    arrival_date: date
    departure_date: date
    arrival_city: str = Field(..., min_length=2, max_length=100)
    has_existing_visa: bool

    # Accommodation
    accommodation_name: str = Field(..., min_length=2, max_length=255)
    accommodation_address: str = Field(..., min_length=5, max_length=500)
    accommodation_city: str = Field(..., min_length=2, max_length=100)

    accepted_terms: Literal[True]

    @field_validator('departure_date')
    def departure_after_arrival(cls, v: date, info: ValidationInfo) -> date:
        arrival = info.data.get('arrival_date')
        if arrival and v < arrival:
            raise ValueError("Departure date cannot be before arrival date")
        return v

    @field_validator('passport_number')
    def uppercase_passport_number(cls, v: str) -> str:
        return v.upper()


class TouristForm(TravelerForm):
    """
    Pre-registration of an individual traveler (EASE)

    The traveler email is required here: it is the only address the
    confirmation notice can go to. The agency form carries its own.
    """
    email: EmailStr


class AgencyForm(TravelerForm):
    """Visa assistance requested by a travel agency for one traveler"""
    email: Optional[EmailStr] = None
    agency_name: str = Field(..., min_length=2, max_length=255)
    agency_contact: str = Field(..., min_length=2, max_length=255)
    agency_email: EmailStr
    agency_phone: str = Field(..., min_length=6, max_length=50)
    agency_address: str = Field(..., min_length=5, max_length=500)


FORMS: Dict[ApplicationType, Type[TravelerForm]] = {
    ApplicationType.TOURIST: TouristForm,
    ApplicationType.AGENCY: AgencyForm,
}


def _field_key(form_cls: Type[BaseModel], loc: tuple) -> str:
    """Public (camelCase) name of the field an error points at"""
    if not loc:
        return "data"
    raw = str(loc[0])
    for name, info in form_cls.model_fields.items():
        if raw in (name, info.alias):
            return info.alias or name
    return raw


def _field_name(form_cls: Type[BaseModel], key: str) -> str:
    for name, info in form_cls.model_fields.items():
        if key in (name, info.alias):
            return name
    return key


def _error_message(field: str, error: Dict[str, Any]) -> str:
    label = FIELD_LABELS.get(field, field)
    error_type = error["type"]
    ctx = error.get("ctx") or {}

    if field == "accepted_terms":
        return TERMS_MESSAGE
    if error_type == "missing":
        return f"{label} is required"
    if error_type == "string_too_short":
        return f"{label} must be at least {ctx.get('min_length')} characters"
    if error_type == "string_too_long":
        return f"{label} must be at most {ctx.get('max_length')} characters"
    if error_type.startswith("date_"):
        return f"{label} must be a valid date (YYYY-MM-DD)"
    if error_type == "enum":
        return f"{label} must be one of: {ctx.get('expected')}"
    if error_type.startswith("bool_"):
        return f"{label} must be true or false"
    if error_type == "json_invalid":
        return "Form data is not valid JSON"
    if field in ("email", "agency_email") and error_type == "value_error":
        return "Invalid email address"
    message = error.get("msg", "Invalid value")
    return message.removeprefix("Value error, ")


def format_validation_errors(
    form_cls: Type[BaseModel],
    exc: ValidationError
) -> List[Dict[str, str]]:
    """
    Turn pydantic errors into {field, message} pairs

    One entry per failing field, ordered as the fields are declared.
    """
    order = {info.alias or name: idx for idx, (name, info) in enumerate(form_cls.model_fields.items())}
    seen: Dict[str, Dict[str, str]] = {}
    for error in exc.errors():
        key = _field_key(form_cls, error["loc"])
        if key in seen:
            continue
        seen[key] = {
            "field": key,
            "message": _error_message(_field_name(form_cls, key), error)
        }
    return sorted(seen.values(), key=lambda item: order.get(item["field"], -1))


def validate_form(form_cls: Type[FormT], payload: Union[str, bytes, Dict[str, Any]]) -> FormT:
    """
    Validate a raw form payload, all-or-nothing

    Args:
        form_cls: TouristForm or AgencyForm
        payload: JSON string or already decoded mapping

    Returns:
        Validated form

    Raises:
        ValidationFailed: listing every failing field
    """
    try:
        if isinstance(payload, (str, bytes)):
            return form_cls.model_validate_json(payload)
        return form_cls.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailed(format_validation_errors(form_cls, e))


def check_document(filename: str, size: int, max_size_mb: int = 5) -> str:
    """
    Validate the passport copy before anything is stored

    Args:
        filename: Original file name
        size: File size in bytes
        max_size_mb: Upload limit

    Returns:
        Lower-cased file extension

    Raises:
        ValidationFailed: on an empty, oversized or unsupported file
    """
    ext = file_extension(filename)
    if ext not in ALLOWED_DOCUMENT_EXTENSIONS:
        raise ValidationFailed([{
            "field": "passportCopy",
            "message": "Unsupported file extension. Allowed: PDF, JPG, PNG."
        }])
    if size <= 0:
        raise ValidationFailed([{
            "field": "passportCopy",
            "message": "File is empty."
        }])
    if size > max_size_mb * 1024 * 1024:
        raise ValidationFailed([{
            "field": "passportCopy",
            "message": f"File too large. Size should not exceed {max_size_mb} MB."
        }])
    return ext


class ResponseBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FeeBreakdown(ResponseBase):
    base_amount: Decimal
    international_fee: Decimal
    total: Decimal


class ServiceResponse(ResponseBase):
    """One entry of the service catalogue"""
    id: str
    form_type: ApplicationType
    name: str
    description: str
    price: Decimal
    fees: FeeBreakdown


class SubmissionResponse(ResponseBase):
    success: bool = True
    reference: str
    payment_url: str


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    reference: Optional[str] = None
    errors: Optional[List[FieldError]] = None


class AgencyDetails(ResponseBase):
    agency_name: str
    agency_contact: str
    agency_email: str
    agency_phone: str
    agency_address: str


class ApplicationStatusResponse(ResponseBase):
    """Status tracking view of an application"""
    reference_number: str
    type: ApplicationType
    status: ApplicationStatus
    status_label: str
    payment_status: PaymentStatus
    payment_status_label: str
    payment_amount: Decimal
    applicant_name: str
    is_complete: bool
    created_at: datetime
    updated_at: datetime
    agency: Optional[AgencyDetails] = None


class PaymentResultResponse(ResponseBase):
    reference: str
    success: bool
    title: str
    message: str
    tracking_url: str


class PaymentCallbackRequest(ResponseBase):
    """Notification sent by the payment gateway"""
    reference: str = Field(..., min_length=1)
    outcome: Literal["paid", "failed"]


class StatusUpdateRequest(ResponseBase):
    """Review decision from the back office"""
    status: ApplicationStatus
