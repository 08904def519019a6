# Все модели должны быть импортированы до настройки мапперов и для Alembic
from portal.models.base import Base
from portal.models.offers import Offer, CustomRequiredDocument
from portal.models.notifications import OfferNotification
from portal.models.applications import Application, ApplicationDocument
from portal.models.errors import Error

__all__ = [
    "Base",
    "Offer",
    "CustomRequiredDocument",
    "OfferNotification",
    "Application",
    "ApplicationDocument",
    "Error",
]
