from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CarteiraSchema(BaseModel):
    id: int
    usuario_id: int
    nome: str
    descricao: Optional[str] = None
    saldo_atual: Decimal
    data_criacao: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UpdateCarteiraSchema(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1)
    descricao: Optional[str] = None
