from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockroom.api.auth import get_current_user
from stockroom.database import get_db
from stockroom.models.user import User
from stockroom.services import report_service
from stockroom.services.report_service import Interval

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/dashboard")
def dashboard(
    interval: Interval = Interval.DAILY, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return report_service.dashboard_summary(db, user.id, interval=interval)


@router.get("/movement-breakdown")
def movement_breakdown(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return report_service.movement_breakdown(db, user.id)


@router.get("/value-trend")
def value_trend(
    interval: Interval = Interval.DAILY, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return report_service.value_trend(db, user.id, interval=interval)


@router.get("/low-stock")
def low_stock(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return report_service.low_stock_report(db, user.id)


@router.get("/recent-movements")
def recent_movements(limit: int = 10, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return report_service.recent_movements(db, user.id, limit=limit)


@router.get("/reconciliation")
def reconciliation(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return report_service.reconciliation(db, user.id)
