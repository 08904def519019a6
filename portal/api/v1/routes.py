from fastapi import APIRouter
from portal.api.v1.endpoints import applications, offers

router = APIRouter(prefix="/v1")

router.include_router(offers.router, prefix="/offers", tags=["Offers"])
router.include_router(applications.router, prefix="/applications", tags=["Applications"])
