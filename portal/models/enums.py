from enum import Enum


class OfferStatus(str, Enum):
    ACTIVE = "active"
    UNDER_EVALUATION = "under_evaluation"
    RESULT = "result"
    UNSUCCESSFUL = "unsuccessful"


class OfferType(str, Enum):
    WORKS = "works"
    INTELLECTUAL_SERVICE = "intellectual_service"
    RECRUITMENT = "recruitment"
    SERVICE = "service"
    # Старые типы формальных тендеров, для них нужен расширенный пакет документов
    CONSULTATION = "consultation"
    TENDER_CALL = "tender_call"
    EQUIPMENT_CALL = "equipment_call"
    EXPRESSION_OF_INTEREST = "expression_of_interest"


class OfferMethod(str, Enum):
    DIRECT_AGREEMENT = "direct_agreement"
    CONSULTATION = "consultation"
    TENDER_CALL = "tender_call"


class Threshold(str, Enum):
    """Lead times at which deadline notifications are due, earliest first."""

    FIVE_DAY = "five_day"
    TWO_DAY = "two_day"
    ONE_DAY = "one_day"
    DEADLINE = "deadline"


class ArchiveWindowStatus(str, Enum):
    NOT_YET_EXPIRED = "not_yet_expired"
    OPEN = "open"
    CLOSED = "closed"
