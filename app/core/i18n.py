import enum
from typing import Dict


class Language(str, enum.Enum):
    EN = "en"
    PT = "pt"


DEFAULT_LANGUAGE = Language.PT


MESSAGES: Dict[str, Dict[str, str]] = {
    "submission_failed": {
        "en": "Failed to submit application. Please try again.",
        "pt": "Falha ao enviar pedido. Por favor, tente novamente.",
    },
    "validation_failed": {
        "en": "Please correct the highlighted fields.",
        "pt": "Por favor, corrija os campos assinalados.",
    },
    "not_found": {
        "en": "Application not found",
        "pt": "Pedido não encontrado",
    },
    "invalid_transition": {
        "en": "This status change is not allowed.",
        "pt": "Esta alteração de estado não é permitida.",
    },
    "rate_limited": {
        "en": "Too many submissions. Please try again later.",
        "pt": "Demasiados pedidos. Por favor, tente mais tarde.",
    },
    "payment_success_title": {
        "en": "Payment Successful!",
        "pt": "Pagamento Bem-sucedido!",
    },
    "payment_success_message": {
        "en": "Your application has been received and is being processed.",
        "pt": "Seu pedido foi recebido e está sendo processado.",
    },
    "payment_failed_title": {
        "en": "Payment Failed",
        "pt": "Falha no Pagamento",
    },
    "payment_failed_message": {
        "en": "There was an issue processing your payment. Please try again.",
        "pt": "Houve um problema ao processar seu pagamento. Por favor, tente novamente.",
    },
    "email_subject": {
        "en": "Cape Verde Visa Application Confirmation",
        "pt": "Confirmação de Pedido de Visto Cabo Verde",
    },
    "payment_description_tourist": {
        "en": "EASE assistance - application {reference}",
        "pt": "Assistência EASE - pedido {reference}",
    },
    "payment_description_agency": {
        "en": "Visa assistance - application {reference}",
        "pt": "Assistência de visto - pedido {reference}",
    },
}


# Shared by the status field and the payment_status field
STATUS_LABELS: Dict[str, Dict[str, str]] = {
    "pending_payment": {"en": "Pending Payment", "pt": "Aguardando Pagamento"},
    "payment_received": {"en": "Payment Received", "pt": "Pagamento Recebido"},
    "processing": {"en": "Processing", "pt": "Em Processamento"},
    "approved": {"en": "Approved", "pt": "Aprovado"},
    "rejected": {"en": "Rejected", "pt": "Rejeitado"},
    "unpaid": {"en": "Unpaid", "pt": "Não Pago"},
    "paid": {"en": "Paid", "pt": "Pago"},
    "failed": {"en": "Failed", "pt": "Falhado"},
}


def translate(key: str, language: Language, **params) -> str:
    """
    Look up a bilingual message

    Args:
        key: Message key
        language: Target language
        **params: Values interpolated into the message

    Returns:
        Localized message, or the key itself when unknown
    """
    entry = MESSAGES.get(key)
    if entry is None:
        return key
    text = entry[Language(language).value]
    return text.format(**params) if params else text


def status_label(status: str, language: Language) -> str:
    """Localized label for a status value, falling back to the raw value"""
    labels = STATUS_LABELS.get(status)
    if labels is None:
        return status
    return labels[Language(language).value]


def parse_language(value: str) -> Language:
    """Language from a raw query value, defaulting to Portuguese"""
    try:
        return Language(value)
    except ValueError:
        return DEFAULT_LANGUAGE
