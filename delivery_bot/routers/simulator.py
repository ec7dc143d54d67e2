import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from delivery_bot.core.database import get_db
from delivery_bot.services.inbound import handle_inbound_message

router = APIRouter(prefix="/simulator")


@router.post("/mensagem")
def simular(
    tenant_id: int,
    telefone: str,
    texto: str = "",
    latitude: float | None = None,
    longitude: float | None = None,
    db: Session = Depends(get_db),
):
    location = None
    if latitude is not None and longitude is not None:
        location = {"latitude": latitude, "longitude": longitude}

    resultado = handle_inbound_message(
        db,
        tenant_id=tenant_id,
        message_id=f"sim-{uuid.uuid4().hex}",
        from_number=telefone,
        text=texto,
        location=location,
        message_type="location" if location else "text",
        deliver_replies=False,
    )
    return {
        "status": resultado.get("status"),
        "estado": resultado.get("state"),
        "respostas": resultado.get("replies", []),
    }
