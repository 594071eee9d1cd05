from typing import List, Dict, Any

from app.core.i18n import Language
from app.models.application import ApplicationType
from app.schemas.application import FeeBreakdown, ServiceResponse
from app.services.fees import base_price_for, calculate_fees

SERVICES: List[Dict[str, Any]] = [
    {
        "id": "ease",
        "form_type": ApplicationType.TOURIST,
        "name": {
            "en": "EASE Assistance",
            "pt": "Assistência EASE",
        },
        "description": {
            "en": "Electronic pre-registration for entry into Cape Verde",
            "pt": "Pré-registro eletrônico para entrada em Cabo Verde",
        },
    },
    {
        "id": "visa",
        "form_type": ApplicationType.AGENCY,
        "name": {
            "en": "Tourist Visa Assistance",
            "pt": "Assistência Visto Turístico",
        },
        "description": {
            "en": "Tourist visa application assistance for Cape Verde",
            "pt": "Assistência na solicitação de visto turístico para Cabo Verde",
        },
    },
]


def list_services(language: Language) -> List[ServiceResponse]:
    """Service catalogue with prices and fee breakdown"""
    lang = Language(language).value
    services = []
    for service in SERVICES:
        price = base_price_for(service["form_type"])
        services.append(ServiceResponse(
            id=service["id"],
            form_type=service["form_type"],
            name=service["name"][lang],
            description=service["description"][lang],
            price=price,
            fees=FeeBreakdown(**calculate_fees(price))
        ))
    return services
