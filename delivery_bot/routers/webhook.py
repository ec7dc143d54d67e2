import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from delivery_bot.core.config import META_WA_VERIFY_TOKEN
from delivery_bot.core.database import get_db
from delivery_bot.models.whatsapp_config import WhatsAppConfig
from delivery_bot.services.inbound import handle_inbound_message
from delivery_bot.whatsapp.service import WhatsAppService

router = APIRouter()
logger = logging.getLogger(__name__)


def _verify_tenant_token(db: Session, tenant_id: int, token: str | None) -> bool:
    if not token:
        return False
    config = db.query(WhatsAppConfig).filter(WhatsAppConfig.tenant_id == tenant_id).first()
    if config and config.verify_token:
        return token == config.verify_token
    return bool(META_WA_VERIFY_TOKEN) and token == META_WA_VERIFY_TOKEN


@router.get("/webhook")
async def verify_webhook(request: Request):
    qp = request.query_params
    mode = qp.get("hub.mode")
    token = qp.get("hub.verify_token")
    challenge = qp.get("hub.challenge")

    if mode == "subscribe" and META_WA_VERIFY_TOKEN and token == META_WA_VERIFY_TOKEN:
        return PlainTextResponse(challenge or "")

    raise HTTPException(status_code=403, detail="Verify token inválido")


@router.get("/api/whatsapp/{tenant_id}/webhook")
async def verify_webhook_tenant(tenant_id: int, request: Request, db: Session = Depends(get_db)):
    qp = request.query_params
    mode = qp.get("hub.mode")
    token = qp.get("hub.verify_token")
    challenge = qp.get("hub.challenge")

    if mode == "subscribe" and _verify_tenant_token(db, tenant_id, token):
        return PlainTextResponse(challenge or "")

    raise HTTPException(status_code=403, detail="Verify token inválido")


@router.post("/api/whatsapp/{tenant_id}/webhook")
async def whatsapp_webhook_tenant(tenant_id: int, request: Request, db: Session = Depends(get_db)):
    payload = await request.json()
    service = WhatsAppService()
    messages = service.parse_webhook(payload)
    if not messages:
        return {"status": "ignored"}

    last_response = None
    for extracted in messages:
        last_response = handle_inbound_message(
            db,
            tenant_id=tenant_id,
            message_id=extracted["message_id"],
            from_number=extracted["from_number"],
            text=extracted.get("text", ""),
            location=extracted.get("location"),
            message_type=extracted.get("message_type", "text"),
            contact_name=extracted.get("contact_name"),
            service=service,
        )

    return last_response or {"status": "ok"}
