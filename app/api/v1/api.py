from fastapi import APIRouter
from app.api.v1.endpoints import auth, donations, requests, inventory, donors, recipients, banks, activities, reports

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(donations.router, prefix="/donations", tags=["donations"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(donors.router, prefix="/donors", tags=["donors"])
api_router.include_router(recipients.router, prefix="/recipients", tags=["recipients"])
api_router.include_router(banks.router, prefix="/banks", tags=["banks"])
api_router.include_router(activities.router, prefix="/activities", tags=["activities"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
