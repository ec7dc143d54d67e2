from __future__ import annotations

from alembic import op

from delivery_bot.core.database import Base
import delivery_bot.models  # noqa: F401

revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # tenants, cardapio, clientes, conversas (sessao do FSM), pedidos e log de mensagens
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
