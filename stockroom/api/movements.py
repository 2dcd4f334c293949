from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from stockroom.api.auth import get_current_user
from stockroom.database import get_db
from stockroom.models.stock_movement import MovementType
from stockroom.models.user import User
from stockroom.schemas.movement import MovementCreate, MovementFailure, MovementOut
from stockroom.services import ledger_service

router = APIRouter(prefix="/movements", tags=["Stock Movements"])

FAILURE_STATUS = {
    ledger_service.VALIDATION_ERROR: 422,
    ledger_service.NOT_FOUND: 404,
    ledger_service.INSUFFICIENT_STOCK: 409,
    ledger_service.PERSISTENCE_ERROR: 500,
}


@router.post(
    "",
    response_model=MovementOut,
    status_code=201,
    responses={code: {"model": MovementFailure} for code in (404, 409, 422, 500)},
)
def record_movement(data: MovementCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = ledger_service.record_movement(
        db, user.id, data.item_id, data.quantity, data.movement_type, note=data.note
    )
    if not result.success:
        body = MovementFailure(detail=result.message, reason=result.reason, field=result.field)
        return JSONResponse(status_code=FAILURE_STATUS[result.reason], content=body.model_dump())
    return result.movement


@router.get("", response_model=list[MovementOut])
def list_movements(
    response: Response,
    limit: int | None = None,
    item_id: str | None = None,
    movement_type: MovementType | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    response.headers["X-Total-Count"] = str(
        ledger_service.count_movements(db, user.id, item_id=item_id, movement_type=movement_type)
    )
    return ledger_service.list_movements(db, user.id, limit=limit, item_id=item_id, movement_type=movement_type)
