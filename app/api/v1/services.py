from typing import List

from fastapi import APIRouter, Query

from app.core.i18n import Language, DEFAULT_LANGUAGE
from app.schemas.application import ServiceResponse
from app.services.catalog import list_services

router = APIRouter()


@router.get("", response_model=List[ServiceResponse])
def get_services(lang: Language = Query(DEFAULT_LANGUAGE)) -> List[ServiceResponse]:
    """
    Services offered on the landing page

    No authentication required - public endpoint
    """
    return list_services(lang)
