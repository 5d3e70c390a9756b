# app/admin/routes.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.admin import services as admin_service
from app.admin.schemas import AdminLogin, AdminLoginResult
from app.auth.deps import require_admin
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import AppException
from app.ticket import services as ticket_service
from app.ticket.schemas import StatusUpdate, TicketOut

router = APIRouter(prefix="/admin", tags=["Admin"])


LOGIN_BODY = {"required": True, "content": {"application/json": {"schema": AdminLogin.model_json_schema()}}}


@router.post("/login", response_model=AdminLoginResult, openapi_extra={"requestBody": LOGIN_BODY})
async def login(request: Request, settings: Settings = Depends(get_settings)):
    # read the body by hand so malformed input still answers with {success, error}
    try:
        payload = AdminLogin.model_validate(await request.json())
    except ValueError:
        return _failed(400, "Invalid request body")

    try:
        token = admin_service.admin_login(settings, payload.username, payload.password)
    except AppException as exc:
        return _failed(exc.status_code, exc.message)
    return AdminLoginResult(success=True, token=token)


def _failed(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=AdminLoginResult(success=False, error=error).model_dump())


@router.get("/tickets", response_model=list[TicketOut])
def tickets(db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    return ticket_service.list_tickets(db)


@router.patch("/tickets/{ticket_id}/status", response_model=TicketOut)
def update_status(
    ticket_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(require_admin),
):
    ticket_service.update_status(db, ticket_id, payload.status, actor)
    return ticket_service.ticket_detail(db, ticket_id)


@router.delete("/tickets/{ticket_id}", status_code=204)
def delete(ticket_id: int, db: Session = Depends(get_db), actor: str = Depends(require_admin)):
    ticket_service.delete_ticket(db, ticket_id)
