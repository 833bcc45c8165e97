from __future__ import annotations

from fastapi import APIRouter, Depends

from stockledger.api.deps import get_services
from stockledger.bootstrap import Services
from stockledger.persistence.admin import reset_all_data

router = APIRouter(prefix="/admin", tags=["admin"])


@router.delete("/data")
def clear_all_data(services: Services = Depends(get_services)):
    cleared = reset_all_data(services.database)
    return {"message": "all data cleared", "tables_cleared": cleared}
