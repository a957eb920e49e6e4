from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from core.normalizacao import (
    normalizar_data,
    normalizar_id_opcional,
    normalizar_status,
    normalizar_tipo,
    normalizar_valor,
)
from models.enums import TipoTransacao, StatusTransacao


class TransacaoSchema(BaseModel):
    tipo: TipoTransacao
    valor: Decimal
    categoria_id: int
    data_transacao: date
    descricao: str = Field(min_length=1, max_length=255)
    carteira_id: Optional[int] = None
    forma_pagamento_id: Optional[int] = None
    metodo_pagamento: Optional[str] = None
    status: StatusTransacao = StatusTransacao.PENDENTE

    @field_validator("tipo", mode="before")
    @classmethod
    def validar_tipo(cls, valor):
        return normalizar_tipo(valor)

    @field_validator("valor", mode="before")
    @classmethod
    def validar_valor(cls, valor):
        return normalizar_valor(valor)

    @field_validator("data_transacao", mode="before")
    @classmethod
    def validar_data(cls, valor):
        return normalizar_data(valor)

    @field_validator("carteira_id", "forma_pagamento_id", mode="before")
    @classmethod
    def validar_ids_opcionais(cls, valor):
        return normalizar_id_opcional(valor)

    @field_validator("status", mode="before")
    @classmethod
    def validar_status(cls, valor):
        return normalizar_status(valor)


class TransacaoSchemaUpdate(BaseModel):
    tipo: Optional[TipoTransacao] = None
    valor: Optional[Decimal] = None
    categoria_id: Optional[int] = None
    data_transacao: Optional[date] = None
    descricao: Optional[str] = Field(default=None, min_length=1, max_length=255)
    forma_pagamento_id: Optional[int] = None
    metodo_pagamento: Optional[str] = None
    status: Optional[StatusTransacao] = None

    @field_validator("tipo", mode="before")
    @classmethod
    def validar_tipo(cls, valor):
        return None if valor is None else normalizar_tipo(valor)

    @field_validator("valor", mode="before")
    @classmethod
    def validar_valor(cls, valor):
        return None if valor is None else normalizar_valor(valor)

    @field_validator("data_transacao", mode="before")
    @classmethod
    def validar_data(cls, valor):
        return None if valor is None else normalizar_data(valor)

    @field_validator("forma_pagamento_id", mode="before")
    @classmethod
    def validar_forma_pagamento(cls, valor):
        return normalizar_id_opcional(valor)

    @field_validator("status", mode="before")
    @classmethod
    def validar_status(cls, valor):
        return None if valor is None else normalizar_status(valor)


class TransacaoSchemaId(BaseModel):
    id: int
    carteira_id: int
    categoria_id: int
    forma_pagamento_id: Optional[int] = None
    tipo: TipoTransacao
    valor: Decimal
    data_transacao: date
    data_registro: Optional[datetime] = None
    descricao: str
    metodo_pagamento: Optional[str] = None
    status: StatusTransacao
    categoria_nome: Optional[str] = None
    forma_pagamento_nome: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
