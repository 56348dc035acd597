from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models, schemas, auth, lending
from database import get_db

router = APIRouter(prefix="/admin", tags=["Admin"])


# Dashboard counters
@router.get("/stats")
def get_stats(
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    return schemas.envelope(lending.stats(db))
