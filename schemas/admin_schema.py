from pydantic import BaseModel, Field
from typing import Optional

from models.enums import TipoNotificacao, TipoUsuario


class PersonificarSchema(BaseModel):
    targetUserId: int

class CancelarAssinaturaSchema(BaseModel):
    motivo: str = Field(min_length=1, max_length=500)

class NotificacaoSchema(BaseModel):
    type: TipoNotificacao
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    targetUser: Optional[int] = None
    targetRole: Optional[TipoUsuario] = None
    autoClose: Optional[int] = None
    persistent: bool = False

class BroadcastSchema(BaseModel):
    type: TipoNotificacao
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    autoClose: Optional[int] = None
    persistent: bool = False
